"""
UTC-first datetime utilities for Patients Service API.

- Timestamps are assigned by SQLite (SQL_UTC_NOW) and stored as TEXT
- Python code works with timezone-aware UTC datetimes
- API responses use ISO 8601 strings with a 'Z' suffix
- Birth dates stay plain ``YYYY-MM-DD`` strings; only "today" comes from here

Usage:
    from core.datetime_utils import utc_today, format_iso, from_db_string

    format_iso(from_db_string("2024-01-15T10:30:00.123Z"))  # "2024-01-15T10:30:00Z"
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# SQLite expression for the current UTC time, millisecond precision
SQL_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """
    Current calendar date in UTC.

    Birth date rules compare against this day, so "today" does not depend on
    the server's local timezone.
    """
    return utc_now().date()


def to_utc(dt: datetime) -> datetime:
    """Convert to UTC; naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 UTC with second precision.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2024-01-15T10:30:00Z'
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def from_db_string(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp column.

    Accepts SQL_UTC_NOW output as well as other ISO 8601 forms (with or
    without offset, ``T`` or space separator).

    Returns:
        UTC datetime, or None if the value is missing or unparseable.
    """
    if value is None:
        return None

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.warning(f"Failed to parse stored timestamp '{value}'")
        return None
