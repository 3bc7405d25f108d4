"""
Unit tests for checkpoint management
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, Mock
from sqlalchemy.exc import IntegrityError, OperationalError

from core.exceptions import (
    CheckpointError,
    CheckpointNotFoundError,
    InvalidCheckpointTransitionError,
)
from ingestion.checkpoint import CheckpointManager, ProgressWatermark
from ingestion.work_items import WorkItem
from models.base import CheckpointStatus, SourceType


def make_session(*results):
    """AsyncSession mock whose execute() returns ``results`` in order"""
    session = AsyncMock()
    session.add = Mock()
    session.execute = AsyncMock(side_effect=list(results))
    return session


def make_factory(session):
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


def updated(rowcount):
    return Mock(rowcount=rowcount)


def selected(row):
    result = Mock()
    result.scalar_one_or_none.return_value = row
    return result


class TestCheckpointStatus:

    def test_in_progress_moves_to_any_terminal_status(self):
        for target in (CheckpointStatus.COMPLETED, CheckpointStatus.RATE_LIMITED, CheckpointStatus.FAILED):
            assert CheckpointStatus.IN_PROGRESS.can_transition_to(target)

    def test_only_resume_leaves_rate_limited_or_failed(self):
        for status in (CheckpointStatus.RATE_LIMITED, CheckpointStatus.FAILED):
            assert status.can_transition_to(CheckpointStatus.IN_PROGRESS)
            assert not status.can_transition_to(CheckpointStatus.COMPLETED)

    def test_completed_is_final(self):
        assert not any(CheckpointStatus.COMPLETED.can_transition_to(s) for s in CheckpointStatus)


class TestCheckpointManager:
    """Test single-row conditional checkpoint writes"""

    @pytest.mark.asyncio
    async def test_create_starts_in_progress(self):
        session = make_session()
        manager = CheckpointManager(make_factory(session))

        checkpoint = await manager.create("bls_100", SourceType.BLS, work_list_version="v1")

        assert checkpoint.id.startswith("chk_")
        assert checkpoint.status is CheckpointStatus.IN_PROGRESS
        assert checkpoint.total_records_synced == 0
        assert checkpoint.last_completed_entity is None
        session.add.assert_called_once_with(checkpoint)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_duplicate_session_raises(self):
        session = make_session()
        session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(CheckpointError):
            await manager.create("bls_100", SourceType.BLS)
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_advance_is_conditional_on_in_progress(self):
        session = make_session(updated(1))
        manager = CheckpointManager(make_factory(session))

        await manager.advance("bls_100", "003", 36)

        stmt = session.execute.call_args[0][0]
        sql = str(stmt)
        assert "sync_checkpoints.status" in sql
        assert "last_completed_entity" in sql
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_advance_without_key_keeps_stored_key(self):
        session = make_session(updated(1))
        manager = CheckpointManager(make_factory(session))

        await manager.advance("bls_100", None, 12)

        sql = str(session.execute.call_args[0][0])
        assert "last_completed_entity" not in sql
        assert "total_records_synced" in sql

    @pytest.mark.asyncio
    async def test_advance_with_no_in_progress_row_raises(self):
        manager = CheckpointManager(make_factory(make_session(updated(0))))

        with pytest.raises(CheckpointError):
            await manager.advance("bls_100", "003", 1)

    @pytest.mark.asyncio
    async def test_advance_rejects_negative_delta(self):
        manager = CheckpointManager(make_factory(make_session()))

        with pytest.raises(ValueError):
            await manager.advance("bls_100", "003", -1)

    @pytest.mark.asyncio
    async def test_database_error_becomes_checkpoint_error(self):
        session = make_session(OperationalError("UPDATE", {}, Exception("connection reset")))
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(CheckpointError) as exc_info:
            await manager.advance("bls_100", "003", 1)
        assert exc_info.value.context["operation"] == "advance"

    @pytest.mark.asyncio
    async def test_finalize_rejects_non_terminal_target(self):
        session = make_session()
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(InvalidCheckpointTransitionError):
            await manager.finalize("bls_100", CheckpointStatus.IN_PROGRESS)
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_finalize_in_progress_row(self):
        session = make_session(updated(1))
        manager = CheckpointManager(make_factory(session))

        await manager.finalize("bls_100", CheckpointStatus.RATE_LIMITED)

        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_finalize_already_finalized_row_is_rejected(self):
        row = SimpleNamespace(status=CheckpointStatus.COMPLETED)
        session = make_session(updated(0), selected(row))
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(InvalidCheckpointTransitionError):
            await manager.finalize("bls_100", CheckpointStatus.FAILED)

    @pytest.mark.asyncio
    async def test_finalize_missing_row(self):
        session = make_session(updated(0), selected(None))
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(CheckpointNotFoundError):
            await manager.finalize("bls_404", CheckpointStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_reopen_rate_limited_row(self):
        row = SimpleNamespace(status=CheckpointStatus.IN_PROGRESS, last_completed_entity="201")
        session = make_session(updated(1), selected(row))
        manager = CheckpointManager(make_factory(session))

        checkpoint = await manager.reopen("bls_100")

        assert checkpoint.last_completed_entity == "201"

    @pytest.mark.asyncio
    async def test_reopen_completed_row_is_rejected(self):
        row = SimpleNamespace(status=CheckpointStatus.COMPLETED, last_completed_entity="507")
        session = make_session(updated(0), selected(row))
        manager = CheckpointManager(make_factory(session))

        with pytest.raises(InvalidCheckpointTransitionError):
            await manager.reopen("bls_100")

    @pytest.mark.asyncio
    async def test_load_by_session_missing(self):
        manager = CheckpointManager(make_factory(make_session(selected(None))))

        with pytest.raises(CheckpointNotFoundError):
            await manager.load_by_session("bls_404")

    @pytest.mark.asyncio
    async def test_load_latest_for_source_none(self):
        manager = CheckpointManager(make_factory(make_session(selected(None))))

        assert await manager.load_latest_for_source(SourceType.BLS) is None


class TestProgressWatermark:
    """Test settled-prefix tracking"""

    def items(self, keys, start=0):
        return [WorkItem(index=start + i, key=k, label=k) for i, k in enumerate(keys)]

    def test_in_order_settles_advance_each_time(self):
        items = self.items(["A", "B", "C"])
        watermark = ProgressWatermark(items)

        assert [watermark.settle(item) for item in items] == ["A", "B", "C"]

    def test_out_of_order_settle_waits_for_gap(self):
        a, b, c, d = self.items(["A", "B", "C", "D"])
        watermark = ProgressWatermark([a, b, c, d])

        assert watermark.settle(b) is None
        assert watermark.settle(d) is None
        assert watermark.key is None
        assert watermark.settle(a) == "B"
        assert watermark.settle(c) == "D"
        assert watermark.settled_count == 4

    def test_resumed_list_uses_absolute_indexes(self):
        items = self.items(["C", "D"], start=2)
        watermark = ProgressWatermark(items)

        assert watermark.settle(items[0]) == "C"

    def test_failed_item_fills_gap_but_never_becomes_key(self):
        a, b, c, d = self.items(["A", "B", "C", "D"])
        watermark = ProgressWatermark([a, b, c, d])

        assert watermark.settle(a) == "A"
        assert watermark.settle(b, succeeded=False) is None
        assert watermark.key == "A"
        assert watermark.settle(d) is None
        assert watermark.settle(c) == "D"

    def test_failed_first_item_lets_later_success_through(self):
        a, b = self.items(["A", "B"])
        watermark = ProgressWatermark([a, b])

        assert watermark.settle(b) is None
        assert watermark.settle(a, succeeded=False) == "B"
        assert watermark.settled_count == 2

    def test_all_failed_leaves_key_unset(self):
        items = self.items(["A", "B"])
        watermark = ProgressWatermark(items)

        assert [watermark.settle(item, succeeded=False) for item in items] == [None, None]
        assert watermark.key is None
