"""Pytest configuration.

IMPORTANT: Environment variables must be set BEFORE importing
galactic_archive code. ``galactic_archive.config.settings`` builds its
singleton at import time, so the env setup happens at module level here and
package imports are deferred to inside fixtures and test modules.
"""

import os
import tempfile

# Keep the default SQLite store out of the repository while testing
if "GALACTIC_SQLITE_PATH" not in os.environ:
    _test_base_dir = tempfile.mkdtemp(prefix="galactic_test_")
    os.environ["GALACTIC_SQLITE_PATH"] = f"{_test_base_dir}/galactic.db"

os.environ.setdefault("GALACTIC_LOG_LEVEL", "debug")
os.environ.setdefault("GALACTIC_LOG_FORMAT", "text")
