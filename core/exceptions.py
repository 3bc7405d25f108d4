"""
Custom exceptions for the market data sync with structured error context.

This module provides the exception hierarchy used by the provider clients,
the loader, the checkpoint manager and the sync orchestrator. Each exception
carries context information for debugging and monitoring.

Exception Hierarchy:
    DataSyncError (base)
    ├── ConfigurationError
    ├── ExtractionError
    │   ├── ProviderRequestError
    │   ├── ProviderResponseError
    │   └── NetworkError
    ├── LoadError
    │   └── UpsertError
    ├── CheckpointError
    │   ├── CheckpointNotFoundError
    │   ├── InvalidCheckpointTransitionError
    │   └── UnresolvableCheckpointError
    ├── RetriesExhaustedError
    ├── SyncCancelledError
    ├── FatalSyncError
    │   └── RateLimitError
    ├── SourceSyncError
    └── NonRetryableError (mixin)
"""

from typing import Optional, Dict, Any, List
from datetime import datetime


class DataSyncError(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, county, url, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


def error_message(exc: BaseException) -> str:
    """Short, display-friendly text for any exception."""
    if isinstance(exc, DataSyncError):
        return exc.message
    return str(exc) or type(exc).__name__


# ============================================================================
# Retry Strategy Mixin
# ============================================================================

class NonRetryableError(DataSyncError):
    """
    Mixin for errors that must NOT trigger retry logic.

    The retry policy re-raises these on the first attempt.
    """
    pass


class FatalSyncError(DataSyncError):
    """
    Failure that stops a whole batch instead of a single work item.

    The concurrency runner stops launching new work when an operation
    raises one of these.
    """
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(DataSyncError):
    """
    Raised when required settings are missing for the requested sources.

    Context should include:
        - source: Source that needs the setting
        - setting: Name of the missing environment variable
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(DataSyncError):
    """Base exception for provider fetch failures."""
    pass


class ProviderRequestError(ExtractionError):
    """
    Raised when a provider answers with a non-success HTTP status.

    Context should include:
        - url: The endpoint that failed
        - status_code: HTTP status code
        - response_body: Response body (truncated)
    """
    pass


class ProviderResponseError(ExtractionError):
    """
    Raised when a provider response cannot be decoded or holds no data.

    Context should include:
        - url: The endpoint that was called
        - response_body: Response body (truncated)
    """
    pass


class NetworkError(ExtractionError):
    """Transport-level failures (timeouts, refused connections)."""
    pass


class RateLimitError(FatalSyncError, NonRetryableError, ExtractionError):
    """
    Provider quota for the day (or period) is exhausted.

    Never retried. Aborts the in-flight batch; checkpointed sources can be
    resumed later with the session id.
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(DataSyncError):
    """Base exception for persistence failures."""
    pass


class UpsertError(LoadError):
    """
    Exception raised when an upsert fails.

    Context should include:
        - table_name: Name of the table
        - conflict_fields: Natural key columns
        - batch_index: Index in the batch (if batch operation)
    """
    pass


# ============================================================================
# Checkpoint Errors
# ============================================================================

class CheckpointError(DataSyncError):
    """
    Exception raised when checkpoint management fails.

    Context should include:
        - session_id: Sync session the checkpoint belongs to
        - operation: Operation that failed (create, advance, finalize, reopen)
    """
    pass


class CheckpointNotFoundError(CheckpointError):
    """No checkpoint row exists for the session."""
    pass


class InvalidCheckpointTransitionError(CheckpointError):
    """The requested status change is not a legal transition."""
    pass


class UnresolvableCheckpointError(CheckpointError):
    """
    The stored position cannot be located in the current work-item list.

    Happens when the reference list changed between runs.
    """
    pass


# ============================================================================
# Orchestration Errors
# ============================================================================

class RetriesExhaustedError(DataSyncError):
    """A work item kept failing after every retry; item-level failure."""
    pass


class SyncCancelledError(DataSyncError):
    """The caller cancelled the run while a wait or call was in flight."""

    def __init__(self, message: str = "sync cancelled", **kwargs):
        super().__init__(message, **kwargs)


class SourceSyncError(DataSyncError):
    """
    A source failed hard during a multi-source run.

    Attributes:
        source: Name of the source that failed
        results: Results of the sources that finished before the failure
    """

    def __init__(
        self,
        message: str,
        source: str,
        results: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context["source"] = source
        super().__init__(message, context, original_exception)
        self.source = source
        self.results = list(results or [])
