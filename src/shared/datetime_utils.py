"""Timezone-aware datetime utilities.

All datetime values use UTC for storage and comparison.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current datetime with UTC timezone.

    Always use this function instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure datetime has UTC timezone.

    If datetime is naive (no timezone), assumes UTC and adds it.
    If datetime has different timezone, converts to UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    """Wall-clock seconds from start to end (both normalised to UTC)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds()


def datetime_to_iso(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
