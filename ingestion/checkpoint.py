"""
Checkpoint management for resumable syncs.

Every write is a single-row statement scoped by the sync session id, so
concurrent tasks that each open their own session never overwrite one
another's progress. Status changes follow CHECKPOINT_TRANSITIONS.
"""

from typing import Dict, List, Optional, Sequence
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from models.base import SourceType, CheckpointStatus, CHECKPOINT_TRANSITIONS
from models.checkpoint import SyncCheckpoint, new_checkpoint_id
from core.exceptions import (
    CheckpointError,
    CheckpointNotFoundError,
    InvalidCheckpointTransitionError,
)
from ingestion.work_items import WorkItem
import logging

logger = logging.getLogger(__name__)

# Statuses a resume may start from; a crashed run leaves the row in progress
_REOPENABLE = tuple(
    status for status, targets in CHECKPOINT_TRANSITIONS.items()
    if CheckpointStatus.IN_PROGRESS in targets
) + (CheckpointStatus.IN_PROGRESS,)


class CheckpointManager:
    """
    Durable progress records for checkpointed sources.

    Responsibilities:
    - Create one checkpoint per sync session
    - Advance the last completed entity and the synced record count
    - Finalize or reopen a session through legal status transitions
    - Look up a session by id, or the latest session for a source
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create(
        self,
        session_id: str,
        source: SourceType,
        work_list_version: Optional[str] = None
    ) -> SyncCheckpoint:
        """
        Create an in-progress checkpoint with no completed entity.

        Raises:
            CheckpointError: If the session already has a checkpoint
        """
        now = datetime.utcnow()
        checkpoint = SyncCheckpoint(
            id=new_checkpoint_id(),
            sync_session_id=session_id,
            source=source,
            last_completed_entity=None,
            total_records_synced=0,
            work_list_version=work_list_version,
            status=CheckpointStatus.IN_PROGRESS,
            started_at=now,
            last_updated_at=now
        )

        async with self.session_factory() as db:
            try:
                db.add(checkpoint)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise CheckpointError(
                    f"Checkpoint already exists for session {session_id}",
                    context={"session_id": session_id, "operation": "create"},
                    original_exception=e
                )
            except SQLAlchemyError as e:
                await db.rollback()
                raise CheckpointError(
                    f"Failed to create checkpoint for session {session_id}",
                    context={"session_id": session_id, "operation": "create"},
                    original_exception=e
                )

        logger.info(f"Created checkpoint {checkpoint.id} for session {session_id} ({source.value})")
        return checkpoint

    async def advance(
        self,
        session_id: str,
        completed_key: Optional[str],
        record_delta: int
    ) -> None:
        """
        Record progress on an in-progress checkpoint.

        Args:
            session_id: Sync session id
            completed_key: New last completed entity, or None to keep the stored one
            record_delta: Records persisted since the last advance (>= 0)

        Raises:
            CheckpointError: If no in-progress checkpoint exists for the session
        """
        if record_delta < 0:
            raise ValueError(f"record_delta must be >= 0, got {record_delta}")

        values = {
            "total_records_synced": SyncCheckpoint.total_records_synced + record_delta,
            "last_updated_at": datetime.utcnow(),
        }
        if completed_key is not None:
            values["last_completed_entity"] = completed_key

        stmt = (
            update(SyncCheckpoint)
            .where(
                SyncCheckpoint.sync_session_id == session_id,
                SyncCheckpoint.status == CheckpointStatus.IN_PROGRESS
            )
            .values(**values)
        )
        rowcount = await self._execute_update(stmt, session_id, "advance")

        if rowcount == 0:
            raise CheckpointError(
                f"No in-progress checkpoint for session {session_id}",
                context={"session_id": session_id, "operation": "advance"}
            )

    async def finalize(self, session_id: str, status: CheckpointStatus) -> None:
        """
        Move an in-progress checkpoint to a terminal status.

        Raises:
            InvalidCheckpointTransitionError: Non-terminal target, or the row is not in progress
            CheckpointNotFoundError: No checkpoint for the session
        """
        if not CheckpointStatus.IN_PROGRESS.can_transition_to(status):
            raise InvalidCheckpointTransitionError(
                f"Cannot finalize a checkpoint as {status.value}",
                context={"session_id": session_id, "operation": "finalize", "target": status.value}
            )

        stmt = (
            update(SyncCheckpoint)
            .where(
                SyncCheckpoint.sync_session_id == session_id,
                SyncCheckpoint.status == CheckpointStatus.IN_PROGRESS
            )
            .values(status=status, last_updated_at=datetime.utcnow())
        )
        rowcount = await self._execute_update(stmt, session_id, "finalize")

        if rowcount == 0:
            current = await self.load_by_session(session_id)
            raise InvalidCheckpointTransitionError(
                f"Cannot move checkpoint {session_id} from {CheckpointStatus(current.status).value} "
                f"to {status.value}",
                context={"session_id": session_id, "operation": "finalize", "target": status.value}
            )

        logger.info(f"Checkpoint {session_id} finalized as {status.value}")

    async def reopen(self, session_id: str) -> SyncCheckpoint:
        """
        Put a rate-limited, failed or interrupted checkpoint back in progress.

        Raises:
            InvalidCheckpointTransitionError: The checkpoint is already completed
            CheckpointNotFoundError: No checkpoint for the session
        """
        stmt = (
            update(SyncCheckpoint)
            .where(
                SyncCheckpoint.sync_session_id == session_id,
                SyncCheckpoint.status.in_(_REOPENABLE)
            )
            .values(status=CheckpointStatus.IN_PROGRESS, last_updated_at=datetime.utcnow())
        )
        rowcount = await self._execute_update(stmt, session_id, "reopen")

        checkpoint = await self.load_by_session(session_id)
        if rowcount == 0:
            raise InvalidCheckpointTransitionError(
                f"Checkpoint {session_id} is {CheckpointStatus(checkpoint.status).value} "
                f"and cannot be resumed",
                context={"session_id": session_id, "operation": "reopen"}
            )

        logger.info(f"Reopened checkpoint {session_id} at {checkpoint.last_completed_entity!r}")
        return checkpoint

    async def load_by_session(self, session_id: str) -> SyncCheckpoint:
        """
        Raises:
            CheckpointNotFoundError: No checkpoint for the session
        """
        async with self.session_factory() as db:
            result = await db.execute(
                select(SyncCheckpoint).where(SyncCheckpoint.sync_session_id == session_id)
            )
            checkpoint = result.scalar_one_or_none()

        if checkpoint is None:
            raise CheckpointNotFoundError(
                f"No checkpoint found for session {session_id}",
                context={"session_id": session_id, "operation": "load"}
            )
        return checkpoint

    async def load_latest_for_source(self, source: SourceType) -> Optional[SyncCheckpoint]:
        """Most recently started checkpoint for ``source``, if any."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(SyncCheckpoint)
                .where(SyncCheckpoint.source == source)
                .order_by(SyncCheckpoint.started_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def load_latest_per_source(self) -> List[SyncCheckpoint]:
        checkpoints = []
        for source in SourceType:
            checkpoint = await self.load_latest_for_source(source)
            if checkpoint is not None:
                checkpoints.append(checkpoint)
        return checkpoints

    async def _execute_update(self, stmt, session_id: str, operation: str) -> int:
        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise CheckpointError(
                    f"Checkpoint {operation} failed for session {session_id}",
                    context={"session_id": session_id, "operation": operation},
                    original_exception=e
                )
        return result.rowcount


class ProgressWatermark:
    """
    Tracks the contiguous prefix of settled work items.

    Items can settle out of order when more than one runs at a time. The
    prefix only grows past an item once every item before it has settled,
    so a stored position never skips work that is still pending. A failed
    item fills its gap in the prefix but never becomes the key: the key is
    the last item inside the prefix whose records were persisted.
    """

    def __init__(self, items: Sequence[WorkItem]):
        self._order: List[WorkItem] = sorted(items, key=lambda item: item.index)
        self._position: Dict[int, int] = {item.index: i for i, item in enumerate(self._order)}
        self._settled = [False] * len(self._order)
        self._succeeded = [False] * len(self._order)
        self._next = 0
        self._last_succeeded = -1

    @property
    def key(self) -> Optional[str]:
        """Key of the last succeeded item in the settled prefix."""
        if self._last_succeeded < 0:
            return None
        return self._order[self._last_succeeded].key

    @property
    def settled_count(self) -> int:
        return sum(self._settled)

    def settle(self, item: WorkItem, succeeded: bool = True) -> Optional[str]:
        """
        Mark ``item`` settled, successfully or not.

        Returns:
            The new watermark key if it moved, else None
        """
        position = self._position[item.index]
        self._settled[position] = True
        self._succeeded[position] = succeeded

        previous = self._last_succeeded
        while self._next < len(self._settled) and self._settled[self._next]:
            if self._succeeded[self._next]:
                self._last_succeeded = self._next
            self._next += 1

        if self._last_succeeded == previous:
            return None
        return self.key
