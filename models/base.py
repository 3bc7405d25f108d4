from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class SourceType(str, enum.Enum):
    """Upstream data providers"""
    HUD = "hud"
    CENSUS = "census"
    BLS = "bls"

    @property
    def display_name(self) -> str:
        return SOURCE_DISPLAY_NAMES[self]


SOURCE_DISPLAY_NAMES = {
    SourceType.HUD: "HUD FMR",
    SourceType.CENSUS: "Census ACS",
    SourceType.BLS: "BLS LAUS",
}


class CheckpointStatus(str, enum.Enum):
    """Sync checkpoint status"""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"

    def can_transition_to(self, target: "CheckpointStatus") -> bool:
        return target in CHECKPOINT_TRANSITIONS[self]


# A run ends in exactly one terminal status; only an explicit resume reopens
# a rate-limited or failed session. Completed sessions are final.
CHECKPOINT_TRANSITIONS = {
    CheckpointStatus.IN_PROGRESS: frozenset({
        CheckpointStatus.COMPLETED,
        CheckpointStatus.RATE_LIMITED,
        CheckpointStatus.FAILED,
    }),
    CheckpointStatus.RATE_LIMITED: frozenset({CheckpointStatus.IN_PROGRESS}),
    CheckpointStatus.FAILED: frozenset({CheckpointStatus.IN_PROGRESS}),
    CheckpointStatus.COMPLETED: frozenset(),
}
