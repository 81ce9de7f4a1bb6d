"""Reconciler: brings one index record in line with one discovered entry.

File entry:
1. Look up the existing row by path
2. Absent: insert it with the observed size and last-indexed = now
3. Present, same size: no write (the row keeps its last-indexed time)
4. Present, different size: update size, name, parent path and
   last-indexed = now in one statement

Directory entry:
1. Look up the existing row by path
2. Absent: insert it with last-indexed = now
3. Present: no write

The write is always a single conditional upsert, so the result is correct
even if the row appeared or changed between the lookup and the write. Each
call performs at most one read and one write, in its own session, touching
only the entry's own path. Failures are raised tagged with the path and are
never retried here.
"""

from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from galactic_archive.common.datetime_utils import utcnow
from galactic_archive.db_sqlite.index.models import MAX_PATH_LENGTH
from galactic_archive.db_sqlite.index.repository import IndexRepository
from galactic_archive.features.indexing.entries import DirectoryEntry, DiscoveredEntry, FileEntry
from galactic_archive.features.indexing.errors import ReconciliationError


class ReconcileOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class Reconciler:
    """Reconciles discovered entries against the index store.

    Args:
        session_factory: Opens one session per reconciliation
        clock: Source of last-indexed timestamps (timezone-aware UTC)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def reconcile(self, entry: DiscoveredEntry) -> ReconcileOutcome:
        """Reconcile one entry.

        Returns:
            What the store write did for this entry

        Raises:
            ReconciliationError: If the entry cannot be stored or the store fails
        """
        if len(entry.path) > MAX_PATH_LENGTH:
            raise ReconciliationError(
                entry.path, f"Path is longer than the {MAX_PATH_LENGTH} character column"
            )
        try:
            # Undecodable bytes in POSIX names surface as lone surrogates
            entry.path.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ReconciliationError(entry.path, "Path is not valid UTF-8", e) from e

        try:
            async with self._session_factory() as session:
                repo = IndexRepository(session)
                if isinstance(entry, FileEntry):
                    outcome = await self._reconcile_file(repo, entry)
                elif isinstance(entry, DirectoryEntry):
                    outcome = await self._reconcile_directory(repo, entry)
                else:
                    raise TypeError(f"Unsupported entry type: {type(entry).__name__}")

                if outcome is not ReconcileOutcome.UNCHANGED:
                    await session.commit()
        except SQLAlchemyError as e:
            raise ReconciliationError(
                entry.path, f"Store error while reconciling: {type(e).__name__}: {e}", e
            ) from e

        return outcome

    async def _reconcile_file(self, repo: IndexRepository, entry: FileEntry) -> ReconcileOutcome:
        existing = await repo.get_file(entry.path)
        if existing is not None and existing.size == entry.size:
            return ReconcileOutcome.UNCHANGED

        written = await repo.upsert_file(
            path=entry.path,
            name=entry.name,
            parent_path=entry.parent_path,
            size=entry.size,
            indexed_at=self._clock(),
        )
        if not written:
            # Another writer stored the same size between lookup and upsert
            return ReconcileOutcome.UNCHANGED
        return ReconcileOutcome.INSERTED if existing is None else ReconcileOutcome.UPDATED

    async def _reconcile_directory(
        self, repo: IndexRepository, entry: DirectoryEntry
    ) -> ReconcileOutcome:
        existing = await repo.get_directory(entry.path)
        if existing is not None:
            return ReconcileOutcome.UNCHANGED

        written = await repo.insert_directory(
            path=entry.path,
            name=entry.name,
            parent_path=entry.parent_path,
            indexed_at=self._clock(),
        )
        return ReconcileOutcome.INSERTED if written else ReconcileOutcome.UNCHANGED
