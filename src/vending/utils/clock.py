"""Timestamp helpers.

Aggregates store timezone-aware UTC values, but rows read back from an RDBMS
column may come back naive. Comparisons go through ``as_utc`` so both shapes
compare cleanly.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
