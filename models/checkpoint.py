from sqlalchemy import Column, Integer, String, Enum, DateTime, Index
from datetime import datetime
import uuid
from models.base import Base, SourceType, CheckpointStatus


def new_checkpoint_id() -> str:
    return f"chk_{uuid.uuid4()}"


class SyncCheckpoint(Base):
    """
    Tracks the progress of one sync session.

    Purpose:
    - Resume a rate-limited or interrupted sync without re-fetching
      completed work items
    - Diagnostics (latest session per source)

    Design:
    - One row per sync session, written with single-row conditional updates
    - last_completed_entity holds the key of the last work item in the
      settled prefix of the ordered work-item list
    - work_list_version pins the reference list the position refers to
    """
    __tablename__ = "sync_checkpoints"

    id = Column(String(64), primary_key=True, default=new_checkpoint_id)
    sync_session_id = Column(String(100), nullable=False, unique=True)

    source = Column(Enum(SourceType, values_callable=lambda e: [m.value for m in e]), nullable=False)

    # Progress
    last_completed_entity = Column(String(100), nullable=True)
    total_records_synced = Column(Integer, nullable=False, default=0)
    work_list_version = Column(String(50), nullable=True)

    # Status
    status = Column(
        Enum(CheckpointStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CheckpointStatus.IN_PROGRESS
    )

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_sync_checkpoint_source_started", "source", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<SyncCheckpoint session={self.sync_session_id} source={self.source} "
            f"status={self.status} last={self.last_completed_entity}>"
        )
