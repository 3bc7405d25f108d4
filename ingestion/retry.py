"""
Retry policy with exponential backoff for transient provider failures.

Retryable vs non-retryable:
- NonRetryableError and FatalSyncError (e.g. RateLimitError): re-raised on
  the first attempt
- SyncCancelledError: propagates immediately, no further attempts
- Anything else: retried up to ``max_retries`` more times

Backoff before retry k (1-based) is ``base_delay * 2 ** (k - 1)``, so with
the default base of one second the waits are 1s, 2s, 4s, ...
"""

from typing import Awaitable, Callable, Optional, TypeVar
import asyncio
import logging

from core.exceptions import (
    FatalSyncError,
    NonRetryableError,
    RetriesExhaustedError,
    SyncCancelledError,
    error_message,
)
from ingestion.cancellation import sleep_or_cancel

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(retry_number: int, base_delay: float = 1.0) -> float:
    """Delay before the ``retry_number``-th retry (1-based)."""
    return base_delay * (2 ** (retry_number - 1))


class RetryPolicy:
    """
    Wraps a fetch callable with bounded exponential-backoff retries.

    Attributes:
        max_retries: Retries after the first attempt (0 means a single attempt)
        base_delay: Delay before the first retry, in seconds
    """

    def __init__(self, max_retries: int, base_delay: float = 1.0):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def run(
        self,
        fetch: Callable[[], Awaitable[T]],
        cancel_event: Optional[asyncio.Event] = None
    ) -> T:
        """
        Call ``fetch`` until it succeeds or the retry budget is spent.

        Raises:
            NonRetryableError, FatalSyncError: Straight from ``fetch``, never retried
            SyncCancelledError: The cancel event fired during a backoff wait
            RetriesExhaustedError: Every attempt failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = backoff_delay(attempt, self.base_delay)
                logger.debug(
                    f"Retry {attempt}/{self.max_retries} in {delay}s after: "
                    f"{error_message(last_error)}"
                )
                await sleep_or_cancel(delay, cancel_event)

            try:
                return await fetch()
            except (NonRetryableError, FatalSyncError, SyncCancelledError):
                raise
            except Exception as e:
                last_error = e

        raise RetriesExhaustedError(
            f"max retries ({self.max_retries}) exceeded: {error_message(last_error)}",
            context={"max_retries": self.max_retries},
            original_exception=last_error
        )
