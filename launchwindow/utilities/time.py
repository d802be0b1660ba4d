"""Time helpers.

All instants inside the system are timezone-aware UTC datetimes.
SQLite stores them as ISO-8601 text.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (accepts a trailing 'Z').

    Returns None for empty input. Raises ValueError on garbage.
    """
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def to_iso(value: datetime | None) -> str | None:
    """Serialize to ISO-8601 UTC, or None."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()
