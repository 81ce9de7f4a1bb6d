"""UTC datetime utilities for consistent timezone handling across the index.

This module provides:
1. Custom SQLAlchemy type that stores naive UTC in a native datetime column
2. ``utcnow()`` for the pipeline's notion of "last indexed"

Usage:
    from galactic_archive.common.datetime_utils import UTCDateTime, utcnow

    # In SQLAlchemy models:
    last_modified: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # In Python code:
    now = utcnow()  # Always returns timezone-aware UTC datetime
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, TypeDecorator


class UTCDateTime(TypeDecorator):
    """SQLAlchemy type that enforces UTC timestamps.

    Storage:
        A plain ``datetime`` column holding naive UTC with full microsecond
        precision, so the value compares correctly against a run's start
        time even when both fall within the same second.

    Python:
        Always returns timezone-aware datetime objects in UTC.
        Rejects naive datetimes on input.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        """Convert Python datetime to database format.

        Args:
            value: Timezone-aware datetime or None

        Returns:
            Naive datetime expressed in UTC, or None

        Raises:
            ValueError: If datetime is naive (no timezone)
        """
        if value is None:
            return None

        if value.tzinfo is None:
            raise ValueError(
                f"Naive datetime not allowed: {value}. "
                "Use datetime.now(UTC) or utcnow() instead of datetime.now()."
            )

        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        """Convert database format to Python datetime.

        Args:
            value: Naive UTC datetime from database

        Returns:
            Timezone-aware datetime in UTC, or None
        """
        if value is None:
            return None

        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.now() or datetime.utcnow().

    Returns:
        Current time in UTC with timezone information.
    """
    return datetime.now(UTC)


def from_timestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp (e.g. ``st_mtime``) to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=UTC)
