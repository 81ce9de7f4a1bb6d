"""Stop-event aware waiting for the pipeline's suspension points."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from galactic_archive.features.indexing.errors import PipelineCancelledError

T = TypeVar("T")


async def until_stopped(aw: Awaitable[T], stop_event: asyncio.Event) -> T:
    """Await ``aw`` unless ``stop_event`` is set first.

    If both finish in the same loop iteration the awaited result wins.
    Queue and semaphore operations tolerate being cancelled while waiting,
    so an abandoned ``aw`` never consumes an item or a slot.

    Raises:
        PipelineCancelledError: If the stop event was set before ``aw`` completed
    """
    task = asyncio.ensure_future(aw)
    stopper = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        if not task.done():
            task.cancel()

    if task.done() and not task.cancelled():
        return task.result()
    raise PipelineCancelledError("Stop requested")
