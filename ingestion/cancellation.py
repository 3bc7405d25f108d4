"""
Helpers that make waits observe a shared cancellation signal.

A sync run shares one ``asyncio.Event``; setting it interrupts permit
acquisition, retry backoff sleeps and in-flight provider calls alike.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from core.exceptions import SyncCancelledError

T = TypeVar("T")


def is_cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


async def wait_or_cancel(aw: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
    """
    Await ``aw`` unless the cancel event fires first.

    When the event wins, the pending work is cancelled and
    ``SyncCancelledError`` is raised.
    """
    if cancel_event is None:
        return await aw

    if cancel_event.is_set():
        if asyncio.iscoroutine(aw):
            aw.close()
        raise SyncCancelledError()

    task = asyncio.ensure_future(aw)
    cancel_wait = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        cancel_wait.cancel()
        raise

    if task.done():
        cancel_wait.cancel()
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise SyncCancelledError()


async def sleep_or_cancel(delay: float, cancel_event: Optional[asyncio.Event]) -> None:
    """Sleep for ``delay`` seconds; raise ``SyncCancelledError`` if cancelled first."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return

    if cancel_event.is_set():
        raise SyncCancelledError()

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise SyncCancelledError()
