# ============================================================================
# File: ingestion/runner.py
# Description: Bounded-concurrency batch runner with abort and cancellation
# ============================================================================
"""
Concurrency Runner - executes one async operation per work item under a cap.

This module provides:
- A counting permit (asyncio.Semaphore) shared by every task of a batch
- Per-item outcomes collected through a queue and merged once at the end
- Partial failure support (item-level errors never stop sibling items)
- Fatal abort (no new items start once a FatalSyncError is observed)
- External cancellation through a shared asyncio.Event
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional
import asyncio
import enum
import logging

from core.exceptions import FatalSyncError, SyncCancelledError, error_message
from ingestion.cancellation import is_cancelled, wait_or_cancel

logger = logging.getLogger(__name__)


class OutcomeStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"        # item-level failure, batch continued
    FATAL = "fatal"          # this item aborted the batch
    CANCELLED = "cancelled"  # external cancellation reached this item
    SKIPPED = "skipped"      # never started because the batch was aborted


@dataclass(frozen=True)
class ItemOutcome:
    item: Any
    status: OutcomeStatus
    value: Any = None
    error: Optional[BaseException] = None


@dataclass
class BatchOutcome:
    """Merged outcomes of one batch, in completion order."""
    outcomes: List[ItemOutcome] = field(default_factory=list)
    fatal_error: Optional[Exception] = None
    cancelled: bool = False

    def _with_status(self, status: OutcomeStatus) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def succeeded(self) -> List[ItemOutcome]:
        return self._with_status(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> List[ItemOutcome]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def not_run(self) -> List[ItemOutcome]:
        """Items that were skipped or cancelled before producing a result."""
        return [
            o for o in self.outcomes
            if o.status in (OutcomeStatus.SKIPPED, OutcomeStatus.CANCELLED)
        ]


class ConcurrencyRunner:
    """
    Runs ``op(item)`` for every item with at most ``max_concurrent`` in flight.

    Responsibilities:
    - Bound concurrency with a single counting permit
    - Record every item's outcome exactly once
    - Stop launching work on a fatal error and surface it
    - Return promptly when the shared cancel event fires
    """

    def __init__(self, max_concurrent: int, cancel_event: Optional[asyncio.Event] = None):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self.cancel_event = cancel_event

    async def run(
        self,
        items: Iterable[Any],
        op: Callable[[Any], Awaitable[Any]]
    ) -> BatchOutcome:
        """
        Execute ``op`` for every item.

        Args:
            items: Work items; each task receives its own item
            op: Async operation; raises FatalSyncError to abort the batch

        Returns:
            BatchOutcome with one ItemOutcome per item
        """
        items = list(items)
        semaphore = asyncio.Semaphore(self.max_concurrent)
        abort = asyncio.Event()
        results: "asyncio.Queue[ItemOutcome]" = asyncio.Queue()

        tasks = [
            asyncio.create_task(self._run_item(item, op, semaphore, abort, results))
            for item in items
        ]
        if tasks:
            await asyncio.gather(*tasks)

        batch = BatchOutcome(cancelled=is_cancelled(self.cancel_event))
        while not results.empty():
            outcome = results.get_nowait()
            batch.outcomes.append(outcome)
            if outcome.status is OutcomeStatus.FATAL and batch.fatal_error is None:
                batch.fatal_error = outcome.error

        logger.info(
            f"Batch finished: {len(batch.succeeded)} succeeded, {len(batch.failed)} failed, "
            f"{len(batch.not_run)} not run (cap={self.max_concurrent}, "
            f"aborted={batch.fatal_error is not None}, cancelled={batch.cancelled})"
        )
        return batch

    def _halted_status(self, abort: asyncio.Event) -> Optional[OutcomeStatus]:
        if is_cancelled(self.cancel_event):
            return OutcomeStatus.CANCELLED
        if abort.is_set():
            return OutcomeStatus.SKIPPED
        return None

    async def _acquire(self, semaphore: asyncio.Semaphore, abort: asyncio.Event) -> bool:
        """Wait for a permit; give up as soon as the batch is aborted or cancelled."""
        if self._halted_status(abort) is not None:
            return False

        acquire = asyncio.ensure_future(semaphore.acquire())
        waiters = {acquire, asyncio.ensure_future(abort.wait())}
        if self.cancel_event is not None:
            waiters.add(asyncio.ensure_future(self.cancel_event.wait()))

        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        for waiter in waiters - {acquire}:
            waiter.cancel()

        if not acquire.done():
            acquire.cancel()
            await asyncio.gather(acquire, return_exceptions=True)
            # The permit may have been granted while the cancellation was delivered
            if acquire.cancelled() or acquire.exception() is not None:
                return False

        if self._halted_status(abort) is not None:
            semaphore.release()
            return False
        return True

    async def _run_item(
        self,
        item: Any,
        op: Callable[[Any], Awaitable[Any]],
        semaphore: asyncio.Semaphore,
        abort: asyncio.Event,
        results: "asyncio.Queue[ItemOutcome]"
    ) -> None:
        if not await self._acquire(semaphore, abort):
            results.put_nowait(ItemOutcome(item, self._halted_status(abort) or OutcomeStatus.SKIPPED))
            return

        try:
            value = await wait_or_cancel(op(item), self.cancel_event)
        except FatalSyncError as e:
            if not abort.is_set():
                logger.warning(f"Fatal error on {item!r}, aborting batch: {error_message(e)}")
            abort.set()
            results.put_nowait(ItemOutcome(item, OutcomeStatus.FATAL, error=e))
        except SyncCancelledError as e:
            results.put_nowait(ItemOutcome(item, OutcomeStatus.CANCELLED, error=e))
        except Exception as e:
            results.put_nowait(ItemOutcome(item, OutcomeStatus.FAILED, error=e))
        else:
            results.put_nowait(ItemOutcome(item, OutcomeStatus.SUCCEEDED, value=value))
        finally:
            semaphore.release()
