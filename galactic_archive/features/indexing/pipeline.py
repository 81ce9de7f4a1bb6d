"""Pipeline coordinator.

Runs the tree walker and the worker pool concurrently against one bounded
queue and decides how the run ends:

- Walker finishes first (normal): the queue is shut down, the pool drains
  what is left, then any walker error is re-raised.
- Pool finishes first: the pool should only stop once the queue is closed,
  so this is the run's terminal error. The walker is cancelled.

Per-directory and per-entry failures are reported in the result and do
not fail the run. Nothing is retried.
"""

import asyncio
import os
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from galactic_archive.common.datetime_utils import utcnow
from galactic_archive.common.paths import normalize_path
from galactic_archive.db_sqlite.db_config import check_store, create_session_factory
from galactic_archive.features.indexing.entries import DiscoveredEntry
from galactic_archive.features.indexing.errors import ConfigurationError, PipelineCancelledError
from galactic_archive.features.indexing.reconciler import Reconciler
from galactic_archive.features.indexing.tree_walker import WalkResult, produce
from galactic_archive.features.indexing.worker_pool import ConsumeResult, consume

DEFAULT_QUEUE_CAPACITY = 100
DEFAULT_MAX_CONCURRENCY = 4


@dataclass
class PipelineResult:
    """Outcome of one complete run."""

    root_path: str
    walk: WalkResult
    consume: ConsumeResult
    started_at: datetime
    finished_at: datetime

    @property
    def ok(self) -> bool:
        """True if every directory was listed and every entry reconciled."""
        return not self.walk.failures and not self.consume.failures

    @property
    def duration(self) -> timedelta:
        return self.finished_at - self.started_at


async def run_pipeline(
    root_path: str | os.PathLike[str] | None,
    engine: AsyncEngine,
    stop_event: asyncio.Event | None = None,
    *,
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> PipelineResult:
    """Index ``root_path`` into the store behind ``engine``.

    Args:
        root_path: Directory to index
        engine: Async engine for the index store (tables must exist)
        stop_event: Setting it stops the run; in-flight writes finish
        queue_capacity: Bound of the walker -> pool queue
        max_concurrency: Maximum reconciliations in flight

    Returns:
        PipelineResult with walk and reconciliation summaries

    Raises:
        ConfigurationError: If ``root_path`` is missing or not a directory
        StoreUnavailableError: If the store cannot be reached at start
        PipelineCancelledError: If ``stop_event`` was set during the run
    """
    if not root_path:
        raise ConfigurationError(
            "The root folder is not specified. Set GALACTIC_ROOT_FOLDER or pass --root"
        )
    root = normalize_path(root_path)
    if not os.path.isdir(root):
        raise ConfigurationError(f"The root folder doesn't exist or is not a directory: {root}")

    await check_store(engine)

    stop_event = stop_event or asyncio.Event()
    started_at = utcnow()
    reconciler = Reconciler(create_session_factory(engine))

    # Backpressure: the walker blocks once this many entries await reconciliation
    queue: asyncio.Queue[DiscoveredEntry] = asyncio.Queue(maxsize=queue_capacity)

    logger.info(
        "Starting indexing run",
        extra={
            "root_path": root,
            "queue_capacity": queue_capacity,
            "max_concurrency": max_concurrency,
        },
    )

    consumer = asyncio.create_task(
        consume(queue, reconciler.reconcile, stop_event, max_concurrency),
        name="galactic-worker-pool",
    )
    producer = asyncio.create_task(produce(root, queue, stop_event), name="galactic-tree-walker")

    try:
        done, _ = await asyncio.wait({producer, consumer}, return_when=asyncio.FIRST_COMPLETED)

        if producer in done:
            queue.shutdown()
            consume_result = await consumer
            # Surfaces the walker's own error, if any
            walk_result = producer.result()
        else:
            producer.cancel()
            await asyncio.wait({producer})
            # Surfaces the pool's error; returning normally here is a bug
            consumer.result()
            raise RuntimeError("Worker pool stopped before the tree walker finished")

    except PipelineCancelledError:
        logger.warning("Indexing run was cancelled prematurely", extra={"root_path": root})
        raise

    except asyncio.CancelledError:
        logger.info("Indexing run task cancelled, shutting down")
        raise

    finally:
        for task in (producer, consumer):
            if not task.done():
                task.cancel()
        await asyncio.wait({producer, consumer})
        # Both may have failed with the same cancellation; only one is re-raised
        for task in (producer, consumer):
            if not task.cancelled():
                task.exception()

    result = PipelineResult(
        root_path=root,
        walk=walk_result,
        consume=consume_result,
        started_at=started_at,
        finished_at=utcnow(),
    )

    log = logger.info if result.ok else logger.warning
    log(
        f"Indexing run finished in {result.duration.total_seconds():.2f}s",
        extra={
            "directories": walk_result.directory_count,
            "files": walk_result.file_count,
            "unreadable_directories": len(walk_result.failures),
            "inserted": consume_result.inserted,
            "updated": consume_result.updated,
            "unchanged": consume_result.unchanged,
            "failed_entries": len(consume_result.failures),
        },
    )
    return result
