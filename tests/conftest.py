"""Shared fixtures: a temporary index store and a temporary directory tree."""

import uuid
from pathlib import Path

import pytest
import pytest_asyncio

from galactic_archive.common.paths import normalize_path
from galactic_archive.db_sqlite.db_config import (
    create_engine_for,
    create_session_factory,
    init_index_db,
)
from galactic_archive.db_sqlite.index.repository import IndexRepository


class DirectoryTree:
    """A real directory on disk with helpers to populate it."""

    def __init__(self, path: Path):
        path.mkdir(parents=True, exist_ok=True)
        self.path = Path(normalize_path(path))

    @property
    def key(self) -> str:
        """The index key for this directory."""
        return str(self.path)

    @property
    def name(self) -> str:
        return self.path.name

    def create_file(self, name: str | None = None, content: str | None = None) -> Path:
        name = name or f"{uuid.uuid4()}.txt"
        file_path = self.path / name
        file_path.write_text(content if content is not None else name)
        return file_path

    def create_directory(self, name: str | None = None) -> "DirectoryTree":
        return DirectoryTree(self.path / (name or uuid.uuid4().hex))


@pytest.fixture
def tree(tmp_path) -> DirectoryTree:
    """Empty root directory to index."""
    return DirectoryTree(tmp_path / "root")


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture
async def index_engine(tmp_path):
    """Fresh SQLite index store with the Directories/Files tables created.

    Lives next to (never inside) the ``tree`` root.
    """
    store_dir = tmp_path / "store"
    store_dir.mkdir()
    engine = create_engine_for(sqlite_url(store_dir / "index.db"))
    await init_index_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(index_engine):
    return create_session_factory(index_engine)


@pytest.fixture
def read_index(session_factory):
    """Coroutine returning ``(files, directories)`` keyed by path."""

    async def _read():
        async with session_factory() as session:
            repo = IndexRepository(session)
            files = {f.path: f for f in await repo.list_files()}
            directories = {d.path: d for d in await repo.list_directories()}
        return files, directories

    return _read
