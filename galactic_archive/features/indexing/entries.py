"""Entries discovered by the tree walker.

An entry lives only between the walker and the worker pool; the
reconciler turns it into a ``Directories`` or ``Files`` row.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory found under the indexed root."""

    path: str
    name: str
    parent_path: str
    observed_mtime: datetime | None = None


@dataclass(frozen=True)
class FileEntry:
    """A file found under the indexed root."""

    path: str
    name: str
    parent_path: str
    size: int | None  # None if the file could not be stat'ed
    observed_mtime: datetime | None = None


DiscoveredEntry = DirectoryEntry | FileEntry
