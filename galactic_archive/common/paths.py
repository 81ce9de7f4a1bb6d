"""Canonical path handling.

Every Path key written to the index goes through ``normalize_path`` so the
same on-disk entry maps to the same key across runs, and across the walker
and the reconciler.
"""

import os


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Return the canonical absolute form of ``path``.

    Symlinks are resolved, ``.``/``..`` segments collapsed and trailing
    separators trimmed. A filesystem root (``/`` or ``C:\\``) keeps its
    separator.

    Args:
        path: Absolute or relative path

    Returns:
        Canonical absolute path string. Empty input stays empty.
    """
    raw = os.fspath(path)
    if not raw:
        return ""

    resolved = os.path.realpath(raw)
    drive, tail = os.path.splitdrive(resolved)
    stripped = tail.rstrip("/\\")
    if not stripped:
        return drive + os.sep
    return drive + stripped
