"""Worker pool: the consumer side of the indexing pipeline.

Drains the bounded queue and hands each entry to the reconciler, with a
counting admission gate limiting how many reconciliations are in flight.
The drain loop does not wait for a reconciliation to finish before pulling
the next entry; it only waits for a free slot.

Error Handling:
    - Reconciliation failure: logged with the path, collected, the pool
      keeps going
    - Stop event: no further entries are pulled or admitted; reconciliations
      already running finish their write
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger

from galactic_archive.features.indexing.cancellation import until_stopped
from galactic_archive.features.indexing.entries import DiscoveredEntry
from galactic_archive.features.indexing.errors import PipelineCancelledError, ReconciliationError
from galactic_archive.features.indexing.reconciler import ReconcileOutcome

ReconcileFn = Callable[[DiscoveredEntry], Awaitable[ReconcileOutcome]]


@dataclass
class ConsumeResult:
    """Aggregate outcome of one drain of the queue."""

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failures: list[ReconciliationError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.unchanged + len(self.failures)

    def record(self, outcome: ReconcileOutcome) -> None:
        if outcome is ReconcileOutcome.INSERTED:
            self.inserted += 1
        elif outcome is ReconcileOutcome.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1


async def consume(
    queue: asyncio.Queue[DiscoveredEntry],
    reconcile: ReconcileFn,
    stop_event: asyncio.Event,
    max_concurrency: int = 4,
) -> ConsumeResult:
    """Reconcile every entry from ``queue`` until it is shut down and drained.

    Args:
        queue: Bounded queue filled by the tree walker
        reconcile: Coroutine function reconciling a single entry
        stop_event: Checked before each pull and each admission wait
        max_concurrency: Size of the admission gate

    Returns:
        ConsumeResult with per-outcome counts and collected failures

    Raises:
        PipelineCancelledError: If ``stop_event`` was set before the queue
            was drained (after in-flight reconciliations finished)
    """
    result = ConsumeResult()
    gate = asyncio.Semaphore(max_concurrency)
    cancelled = False

    async def _reconcile_one(entry: DiscoveredEntry) -> None:
        try:
            result.record(await reconcile(entry))
        except ReconciliationError as e:
            _record_failure(result, e)
        except Exception as e:
            _record_failure(result, ReconciliationError(entry.path, f"Unexpected error: {e}", e))
        finally:
            gate.release()

    # TaskGroup exit waits for every admitted reconciliation
    async with asyncio.TaskGroup() as tg:
        while True:
            if stop_event.is_set():
                cancelled = True
                break

            try:
                entry = await until_stopped(queue.get(), stop_event)
            except asyncio.QueueShutDown:
                break  # walker finished and queue is drained
            except PipelineCancelledError:
                cancelled = True
                break

            try:
                await until_stopped(gate.acquire(), stop_event)
            except PipelineCancelledError:
                cancelled = True
                break

            tg.create_task(_reconcile_one(entry))

    logger.info(
        f"Reconciled {result.processed} entries "
        f"({result.inserted} inserted, {result.updated} updated, "
        f"{result.unchanged} unchanged, {len(result.failures)} failed)",
        extra={
            "inserted": result.inserted,
            "updated": result.updated,
            "unchanged": result.unchanged,
            "failed": len(result.failures),
        },
    )

    if cancelled:
        raise PipelineCancelledError(
            f"Worker pool stopped after {result.processed} entries; queue not drained"
        )
    return result


def _record_failure(result: ConsumeResult, error: ReconciliationError) -> None:
    result.failures.append(error)
    logger.error(
        "Failed to reconcile entry, continuing",
        extra={
            "path": error.path,
            "error": str(error),
            "error_type": type(error.cause).__name__ if error.cause else type(error).__name__,
        },
    )
