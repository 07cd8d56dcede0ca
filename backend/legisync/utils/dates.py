"""
Date helpers shared by the sync pipeline.

All datetimes handled by the pipeline are timezone-aware UTC. Upstream
payloads mix plain dates ("2024-01-10") and ISO timestamps
("2024-01-10T18:32:05Z"); stores such as SQLite hand back naive values.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse an upstream date value into an aware UTC datetime.

    Args:
        value: ISO date/datetime string, ``date`` or ``datetime``

    Returns:
        Parsed datetime, or None if the value is empty or not a valid date

    Examples:
        >>> parse_date("2024-01-10")
        datetime.datetime(2024, 1, 10, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_date("not a date") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def format_api_datetime(value: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SSZ`` for Congress.gov query parameters."""
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def session_start(congress: int) -> datetime:
    """
    Start of a congressional session.

    Session ``n`` begins on January 3 of ``2023 - (118 - n) * 2``.

    Example:
        >>> session_start(119)
        datetime.datetime(2025, 1, 3, 0, 0, tzinfo=datetime.timezone.utc)
    """
    return datetime(2023 - (118 - congress) * 2, 1, 3, tzinfo=timezone.utc)


def session_end(congress: int) -> datetime:
    """End of a congressional session (start of the next one)."""
    return session_start(congress + 1)
