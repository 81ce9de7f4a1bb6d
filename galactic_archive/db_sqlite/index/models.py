"""Index database models.

Uses modern SQLAlchemy 2.0 syntax with Mapped[] type hints. Table and
column names match the store schema shared with other consumers of the
index (``Directories``/``Files`` with PascalCase columns); the Python
attribute names are snake_case.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from galactic_archive.common.datetime_utils import UTCDateTime
from galactic_archive.db_sqlite.base import Base

# Width of every path/name column
MAX_PATH_LENGTH = 256


class DirectoryTable(Base):
    """One row per directory discovered under the indexed root."""

    __tablename__ = "Directories"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)

    # Natural key: canonical absolute path
    path: Mapped[str] = mapped_column("Path", String(MAX_PATH_LENGTH), nullable=False, unique=True)
    name: Mapped[str] = mapped_column("Name", String(MAX_PATH_LENGTH), nullable=False)
    parent_path: Mapped[str] = mapped_column(
        "DirectoryPath", String(MAX_PATH_LENGTH), nullable=False
    )

    # Time this system last wrote the row, not the filesystem mtime
    last_indexed: Mapped[datetime] = mapped_column("LastModified", UTCDateTime, nullable=False)


class FileTable(Base):
    """One row per file discovered under the indexed root."""

    __tablename__ = "Files"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)

    path: Mapped[str] = mapped_column("Path", String(MAX_PATH_LENGTH), nullable=False, unique=True)
    name: Mapped[str] = mapped_column("Name", String(MAX_PATH_LENGTH), nullable=False)
    parent_path: Mapped[str] = mapped_column(
        "DirectoryPath", String(MAX_PATH_LENGTH), nullable=False
    )

    # Null only when the size could not be read
    size: Mapped[int | None] = mapped_column("Size", BigInteger, nullable=True)

    last_indexed: Mapped[datetime] = mapped_column("LastModified", UTCDateTime, nullable=False)
