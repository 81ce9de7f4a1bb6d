"""Index store connection management.

The index lives in any SQLAlchemy async store whose dialect offers
``INSERT .. ON CONFLICT .. DO UPDATE .. WHERE`` (SQLite and PostgreSQL).
SQLite is the default and gets the same PRAGMA tuning as a long-running
service database:

- WAL mode so readers never block the single writer
- busy_timeout so concurrent reconciliations wait for the write lock
  instead of failing with SQLITE_BUSY

Every reconciliation opens its own session from the session factory, so
concurrent writes are isolated by the store's transactions rather than by
application locks.
"""

import os

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from galactic_archive.db_sqlite.base import Base
from galactic_archive.features.indexing.errors import ConfigurationError, StoreUnavailableError

# Dialects providing the conditional upsert the reconciler relies on
SUPPORTED_DIALECTS = frozenset({"sqlite", "postgresql"})


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")  # Write-Ahead Logging
        cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
        cursor.execute("PRAGMA busy_timeout=5000")  # Wait up to 5s on SQLITE_BUSY
    finally:
        cursor.close()


def create_engine_for(url: str) -> AsyncEngine:
    """Create an async engine for the index store.

    Args:
        url: SQLAlchemy async URL (``sqlite+aiosqlite:///...``,
            ``postgresql+asyncpg://...``)

    Returns:
        Configured async engine

    Raises:
        ConfigurationError: If the URL is malformed, its driver is not
            installed, or the dialect has no conditional upsert
    """
    if not url:
        raise ConfigurationError("Store connection URL is not configured (GALACTIC_DATABASE_URL)")

    try:
        engine = create_async_engine(url, echo=False)
    except (ArgumentError, NoSuchModuleError, ImportError) as e:
        raise ConfigurationError(f"Invalid store connection URL: {e}") from e

    if engine.dialect.name not in SUPPORTED_DIALECTS:
        raise ConfigurationError(
            f"Unsupported store dialect '{engine.dialect.name}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_DIALECTS))}"
        )

    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _apply_sqlite_pragmas)

    return engine


def _sqlite_file(engine: AsyncEngine) -> str | None:
    """Absolute path of a file-backed SQLite store, None for anything else."""
    if engine.dialect.name != "sqlite":
        return None
    database = engine.url.database
    if not database or database == ":memory:" or engine.url.query.get("uri"):
        return None
    return os.path.abspath(database)


def _require_store_dir(engine: AsyncEngine) -> None:
    db_file = _sqlite_file(engine)
    if db_file is not None and not os.path.isdir(os.path.dirname(db_file)):
        raise StoreUnavailableError(
            f"Index store directory does not exist: {os.path.dirname(db_file)}"
        )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory handed to the pipeline; one session per reconciliation."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def check_store(engine: AsyncEngine) -> None:
    """Verify the store is reachable before a run starts.

    A SQLite file whose directory is missing is reported without opening a
    connection.

    Raises:
        StoreUnavailableError: If a trivial query cannot be executed
    """
    _require_store_dir(engine)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        raise StoreUnavailableError(f"Index store is unreachable: {e}") from e


async def init_index_db(engine: AsyncEngine) -> None:
    """Create the Directories and Files tables if they don't exist.

    Safe to call on every startup.

    Raises:
        StoreUnavailableError: If the store cannot be reached or written
    """
    # Import models so they register with Base.metadata
    from galactic_archive.db_sqlite.index import models  # noqa: F401

    _require_store_dir(engine)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (SQLAlchemyError, OSError) as e:
        raise StoreUnavailableError(f"Could not create the index schema: {e}") from e

    logger.info(f"Index schema ready ({engine.dialect.name})")


async def checkpoint_wal(engine: AsyncEngine) -> None:
    """Force a WAL checkpoint to write changes to the main database file.

    Only meaningful for SQLite; a no-op for other stores.
    """
    if engine.dialect.name != "sqlite":
        return
    db_file = _sqlite_file(engine)
    if db_file is not None and not os.path.exists(db_file):
        return

    try:
        async with engine.connect() as conn:
            await conn.execute(text("PRAGMA wal_checkpoint(TRUNCATE)"))
        logger.info("Index WAL checkpoint complete")
    except SQLAlchemyError as e:
        logger.warning(f"WAL checkpoint failed: {e}")
