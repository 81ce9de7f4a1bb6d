"""Directory/file index tables.

The index maps each canonical path under the crawled root to one row in
``Directories`` or ``Files``, holding its name, parent path, size (files)
and the time the indexer last wrote it.
"""

from galactic_archive.db_sqlite.index.models import MAX_PATH_LENGTH, DirectoryTable, FileTable
from galactic_archive.db_sqlite.index.repository import IndexRepository
from galactic_archive.db_sqlite.index.schemas import DirectoryRead, FileRead

__all__ = [
    "MAX_PATH_LENGTH",
    "DirectoryTable",
    "FileTable",
    "IndexRepository",
    "DirectoryRead",
    "FileRead",
]
