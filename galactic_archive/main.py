"""
Galactic Archive indexer entry point.

Runs one indexing pass over the configured root folder:
- Loguru logging
- Store bootstrap (connectivity check, Directories/Files tables)
- Walker + worker pool pipeline
- SIGINT/SIGTERM set the stop event so in-flight writes can finish

Exit codes: 0 success, 1 failure, 130 cancelled.
"""

import argparse
import asyncio
import signal
import sys
from contextlib import suppress

from loguru import logger

from galactic_archive.config.logger import setup_logging
from galactic_archive.config.settings import settings
from galactic_archive.db_sqlite.db_config import (
    checkpoint_wal,
    create_engine_for,
    init_index_db,
)
from galactic_archive.features.indexing.errors import GalacticArchiveError, PipelineCancelledError
from galactic_archive.features.indexing.pipeline import PipelineResult, run_pipeline

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


async def run(
    root_folder: str | None,
    database_url: str,
    stop_event: asyncio.Event,
    *,
    run_migrations: bool = True,
    queue_capacity: int = 100,
    max_concurrency: int = 4,
) -> PipelineResult:
    """Bootstrap the store and run the pipeline once.

    Args:
        root_folder: Directory to index
        database_url: SQLAlchemy async URL of the index store
        stop_event: Set to stop the run early
        run_migrations: Create the index tables before indexing
        queue_capacity: Bound of the walker -> pool queue
        max_concurrency: Maximum reconciliations in flight

    Returns:
        PipelineResult of the run
    """
    engine = create_engine_for(database_url)
    try:
        if run_migrations:
            await init_index_db(engine)

        return await run_pipeline(
            root_folder,
            engine,
            stop_event,
            queue_capacity=queue_capacity,
            max_concurrency=max_concurrency,
        )
    finally:
        await checkpoint_wal(engine)
        await engine.dispose()
        logger.info("Database connections closed")


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="galactic-archive",
        description="Index a directory tree into the Galactic Archive store",
    )
    parser.add_argument(
        "--root",
        help="Root folder to index (default: GALACTIC_ROOT_FOLDER)",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy async store URL (default: GALACTIC_DATABASE_URL or the SQLite path)",
    )
    parser.add_argument(
        "--no-migrations",
        action="store_true",
        help="Skip creating the index tables",
    )
    parser.add_argument(
        "--log-level",
        choices=["trace", "debug", "info", "success", "warning", "error", "critical"],
        help="Log level (default: GALACTIC_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log output format (default: GALACTIC_LOG_FORMAT)",
    )
    return parser


async def _amain(args: argparse.Namespace) -> int:
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    root_folder = args.root or settings.indexer.root_folder
    database_url = args.database_url or settings.database.url

    logger.info("=" * 60)
    logger.info("GALACTIC ARCHIVE")
    logger.info(f"Root folder: {root_folder}")
    logger.info(
        f"Queue capacity: {settings.indexer.queue_capacity}, "
        f"max concurrency: {settings.indexer.max_concurrency}"
    )
    logger.info("=" * 60)

    try:
        result = await run(
            root_folder,
            database_url,
            stop_event,
            run_migrations=settings.database.run_migrations and not args.no_migrations,
            queue_capacity=settings.indexer.queue_capacity,
            max_concurrency=settings.indexer.max_concurrency,
        )
    except PipelineCancelledError:
        logger.warning("Galactic archive indexing was cancelled prematurely")
        return EXIT_CANCELLED
    except GalacticArchiveError as e:
        logger.error(f"Galactic archive indexing failed to finish: {e}")
        return EXIT_FAILED
    except Exception:
        logger.exception("Galactic archive indexing failed to finish")
        return EXIT_FAILED

    if result.ok:
        logger.info("Galactic archive indexer finished its mission")
    else:
        logger.warning(
            f"Galactic archive indexer finished with {len(result.walk.failures)} unreadable "
            f"directories and {len(result.consume.failures)} failed entries"
        )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Console entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_format=args.log_format)
    return asyncio.run(_amain(args))


if __name__ == "__main__":
    sys.exit(main())
