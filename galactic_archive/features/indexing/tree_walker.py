"""Tree walker: the producer side of the indexing pipeline.

Breadth-first traversal of the root directory using an explicit FIFO of
pending directories. For each directory:
1. List immediate subdirectories, emit a DirectoryEntry for each and queue
   it for expansion
2. List immediate files and emit a FileEntry for each

The two listings are independent: if one fails, the failure is recorded for
that directory and the other still runs. One unreadable subtree never stops
the walk.

Emitting blocks while the output queue is full, which couples crawl speed to
index speed and caps memory use.
"""

import asyncio
import os
from collections import deque
from dataclasses import dataclass, field

from loguru import logger

from galactic_archive.common.datetime_utils import from_timestamp
from galactic_archive.features.indexing.cancellation import until_stopped
from galactic_archive.features.indexing.entries import DirectoryEntry, DiscoveredEntry, FileEntry
from galactic_archive.features.indexing.errors import PipelineCancelledError, TraversalError


@dataclass
class WalkResult:
    """Counts of emitted entries and the directories that could not be listed."""

    directory_count: int = 0
    file_count: int = 0
    failures: list[TraversalError] = field(default_factory=list)


def scan_subdirectories(directory: str) -> list[DirectoryEntry]:
    """List the immediate subdirectories of ``directory``.

    Symlinked directories are not followed, so the walk cannot loop.

    Raises:
        OSError: If the directory cannot be listed
    """
    entries: list[DirectoryEntry] = []
    with os.scandir(directory) as it:
        for item in it:
            if not item.is_dir(follow_symlinks=False):
                continue
            try:
                mtime = from_timestamp(item.stat(follow_symlinks=False).st_mtime)
            except OSError:
                mtime = None
            entries.append(
                DirectoryEntry(
                    path=os.path.join(directory, item.name),
                    name=item.name,
                    parent_path=directory,
                    observed_mtime=mtime,
                )
            )
    entries.sort(key=lambda e: e.name)
    return entries


def scan_files(directory: str) -> list[FileEntry]:
    """List the immediate files of ``directory`` with their sizes.

    A file that vanishes between listing and stat is still reported, with
    an unknown size.

    Raises:
        OSError: If the directory cannot be listed
    """
    entries: list[FileEntry] = []
    with os.scandir(directory) as it:
        for item in it:
            if item.is_dir(follow_symlinks=False) or not item.is_file():
                continue
            try:
                stat = item.stat()
                size, mtime = stat.st_size, from_timestamp(stat.st_mtime)
            except OSError as e:
                logger.warning(f"Could not stat file {item.path}: {e}")
                size, mtime = None, None
            entries.append(
                FileEntry(
                    path=os.path.join(directory, item.name),
                    name=item.name,
                    parent_path=directory,
                    size=size,
                    observed_mtime=mtime,
                )
            )
    entries.sort(key=lambda e: e.name)
    return entries


async def produce(
    root_path: str,
    queue: asyncio.Queue[DiscoveredEntry],
    stop_event: asyncio.Event,
) -> WalkResult:
    """Walk ``root_path`` breadth-first and emit every entry onto ``queue``.

    The root itself is not emitted; its children are. The queue is shut down
    when the walk ends, whatever the outcome, so the consumer can drain what
    remains and finish.

    Args:
        root_path: Canonical absolute path of an existing directory
        queue: Bounded output queue
        stop_event: Checked before each directory is expanded

    Returns:
        WalkResult with directory/file counts and per-directory failures

    Raises:
        PipelineCancelledError: If ``stop_event`` was set during the walk
    """
    loop = asyncio.get_event_loop()
    result = WalkResult()
    pending: deque[str] = deque([root_path])

    try:
        while pending:
            if stop_event.is_set():
                raise PipelineCancelledError(
                    f"Walk cancelled with {len(pending)} directories left to expand"
                )

            directory = pending.popleft()

            # Filesystem listing is blocking I/O, run it in the thread pool
            try:
                subdirectories = await loop.run_in_executor(None, scan_subdirectories, directory)
            except OSError as e:
                _record_failure(result, directory, "subdirectories", e)
                subdirectories = []

            for entry in subdirectories:
                await until_stopped(queue.put(entry), stop_event)
                result.directory_count += 1
                pending.append(entry.path)

            try:
                files = await loop.run_in_executor(None, scan_files, directory)
            except OSError as e:
                _record_failure(result, directory, "files", e)
                files = []

            for entry in files:
                await until_stopped(queue.put(entry), stop_event)
                result.file_count += 1

    finally:
        queue.shutdown()

    logger.info(
        f"Walk finished: found {result.directory_count} directories "
        f"and {result.file_count} files",
        extra={
            "root_path": root_path,
            "directories": result.directory_count,
            "files": result.file_count,
            "unreadable": len(result.failures),
        },
    )
    return result


def _record_failure(result: WalkResult, directory: str, stage: str, error: OSError) -> None:
    failure = TraversalError(directory, stage, error)
    result.failures.append(failure)
    # Path goes in extra only; loguru brace-formats the message when kwargs are passed
    logger.error(
        f"Failed while queueing {stage} of a directory, continuing",
        extra={
            "directory": directory,
            "stage": stage,
            "error": str(error),
            "error_type": type(error).__name__,
        },
    )
