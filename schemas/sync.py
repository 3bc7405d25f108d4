"""
Pydantic schemas for sync requests, runs and results
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
import enum

VALID_SOURCES = ("hud", "census", "bls")


def parse_sources(value) -> List[str]:
    """
    Parse a source selection into a list of source names.

    Accepts a comma-separated string or a list. Unknown names are dropped
    and an empty selection falls back to ``["all"]``.
    """
    if value is None:
        return ["all"]
    parts = value.split(",") if isinstance(value, str) else list(value)

    sources = []
    for part in parts:
        name = str(part).strip().lower()
        if name == "all":
            return ["all"]
        if name in VALID_SOURCES and name not in sources:
            sources.append(name)

    return sources or ["all"]


class SyncStatus(str, enum.Enum):
    """Outcome of one source's sync"""
    COMPLETED = "completed"
    PARTIAL = "partial"  # Stopped early on a provider rate limit; resumable
    CANCELLED = "cancelled"


class SyncRequest(BaseModel):
    """Parameters for a caller-initiated sync."""

    sources: List[str] = Field(default_factory=lambda: ["all"])
    state_code: str = "TX"
    census_year: Optional[int] = None
    bls_start_year: Optional[int] = None
    bls_end_year: Optional[int] = None
    resume_session_id: Optional[str] = None

    # Per-request overrides of the orchestrator defaults
    max_concurrent: Optional[int] = Field(None, ge=1)
    max_retries: Optional[int] = Field(None, ge=0)
    dry_run: Optional[bool] = None

    @validator("sources", pre=True)
    def normalize_sources(cls, v):
        return parse_sources(v)

    @validator("state_code")
    def upper_state_code(cls, v):
        return v.strip().upper() or "TX"


class SyncRun(BaseModel):
    """One execution of one source's ingestion (in-memory only)."""

    source: str
    started_at: datetime = Field(default_factory=datetime.utcnow)
    max_concurrent: int = Field(..., ge=1)
    dry_run: bool = False
    resume_session_id: Optional[str] = None
    session_id: Optional[str] = None


class SyncResult(BaseModel):
    """
    Summary of one source's sync, returned to the caller.

    ``successful`` counts record-units for sources that fan out records
    (HUD, BLS) and work items for Census; ``failed`` always counts work
    items.
    """

    source: str
    status: SyncStatus = SyncStatus.COMPLETED
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    errors: List[str] = Field(default_factory=list)
    session_id: Optional[str] = None

    def display_errors(self, limit: int = 10) -> List[str]:
        """First ``limit`` errors, plus a note of how many were left out."""
        if len(self.errors) <= limit:
            return list(self.errors)
        shown = list(self.errors[:limit])
        shown.append(f"... and {len(self.errors) - limit} more errors")
        return shown

    def summary_lines(self, error_limit: int = 10) -> List[str]:
        lines = [
            f"{self.source}:",
            f"  Status: {self.status.value}",
            f"  Successful: {self.successful}",
            f"  Failed: {self.failed}",
        ]
        if self.skipped:
            lines.append(f"  Skipped: {self.skipped}")
        lines.append(f"  Duration: {self.duration_seconds:.1f}s")
        if self.errors:
            lines.append("  Errors:")
            lines.extend(f"    - {e}" for e in self.display_errors(error_limit))
        return lines
