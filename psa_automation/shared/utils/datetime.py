"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the engine are timezone-aware UTC. Event payloads
carry ISO-8601 strings (often with a trailing "Z"); parse them here.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def parse_datetime(value: object) -> datetime | None:
    """
    Coerce a datetime or ISO-8601 string to a UTC-aware datetime.

    Accepts the JavaScript-style "Z" suffix. Anything else (numbers,
    malformed strings, None) returns None so callers can fail closed.

    Args:
        value: datetime instance or ISO-8601 string

    Returns:
        UTC-aware datetime or None
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two datetimes (never negative)."""
    return max(0, int((end - start).total_seconds() * 1000))
