"""Index repository.

Reads and writes ``Directories``/``Files`` rows through an AsyncSession.
Writes are single conditional statements (``INSERT .. ON CONFLICT``), so a
row is never left half-applied and two writers racing on one path cannot
lose an update.
"""

from datetime import datetime

from sqlalchemy import func, inspect, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from galactic_archive.db_sqlite.index.models import DirectoryTable, FileTable
from galactic_archive.db_sqlite.index.schemas import DirectoryRead, FileRead
from galactic_archive.features.indexing.errors import ConfigurationError

_INSERT_BY_DIALECT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

# Mapper column collections are keyed by attribute name
_dirs = inspect(DirectoryTable).c
_files = inspect(FileTable).c


class IndexRepository:
    """Store access for one session (one reconciliation or one query)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _insert(self, table):
        dialect = self._session.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect](table)
        except KeyError:
            raise ConfigurationError(
                f"Unsupported store dialect '{dialect}': no conditional upsert"
            ) from None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_file(self, path: str) -> FileRead | None:
        result = await self._session.execute(select(FileTable).where(FileTable.path == path))
        row = result.scalar_one_or_none()
        return FileRead.model_validate(row) if row is not None else None

    async def get_directory(self, path: str) -> DirectoryRead | None:
        result = await self._session.execute(
            select(DirectoryTable).where(DirectoryTable.path == path)
        )
        row = result.scalar_one_or_none()
        return DirectoryRead.model_validate(row) if row is not None else None

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    async def upsert_file(
        self,
        path: str,
        name: str,
        parent_path: str,
        size: int | None,
        indexed_at: datetime,
    ) -> bool:
        """Insert a file row, or refresh it only if its size changed.

        On conflict the existing row's size, name, parent path and
        last-indexed time are replaced in the same statement; when the
        stored size equals ``size`` the row is left untouched.

        Returns:
            True if a row was inserted or updated
        """
        stmt = self._insert(FileTable.__table__).values(
            {
                _files.path: path,
                _files.name: name,
                _files.parent_path: parent_path,
                _files.size: size,
                _files.last_indexed: indexed_at,
            }
        )
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[_files.path],
            set_={
                _files.name: excluded[_files.name.key],
                _files.parent_path: excluded[_files.parent_path.key],
                _files.size: excluded[_files.size.key],
                _files.last_indexed: excluded[_files.last_indexed.key],
            },
            where=_files.size.is_distinct_from(excluded[_files.size.key]),
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def insert_directory(
        self,
        path: str,
        name: str,
        parent_path: str,
        indexed_at: datetime,
    ) -> bool:
        """Insert a directory row unless one already exists for ``path``.

        Returns:
            True if a row was inserted
        """
        stmt = (
            self._insert(DirectoryTable.__table__)
            .values(
                {
                    _dirs.path: path,
                    _dirs.name: name,
                    _dirs.parent_path: parent_path,
                    _dirs.last_indexed: indexed_at,
                }
            )
            .on_conflict_do_nothing(index_elements=[_dirs.path])
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Listing queries
    # ------------------------------------------------------------------

    async def list_files(self, parent_path: str | None = None) -> list[FileRead]:
        """All file records, optionally only those directly under ``parent_path``."""
        stmt = select(FileTable).order_by(FileTable.path)
        if parent_path is not None:
            stmt = stmt.where(FileTable.parent_path == parent_path)
        result = await self._session.execute(stmt)
        return [FileRead.model_validate(row) for row in result.scalars()]

    async def list_directories(self, parent_path: str | None = None) -> list[DirectoryRead]:
        """All directory records, optionally only those directly under ``parent_path``."""
        stmt = select(DirectoryTable).order_by(DirectoryTable.path)
        if parent_path is not None:
            stmt = stmt.where(DirectoryTable.parent_path == parent_path)
        result = await self._session.execute(stmt)
        return [DirectoryRead.model_validate(row) for row in result.scalars()]

    async def count_files(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(FileTable))
        return result.scalar_one()

    async def count_directories(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(DirectoryTable))
        return result.scalar_one()
