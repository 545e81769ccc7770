"""Datetime utilities for common operations."""

from datetime import datetime, date, timedelta, timezone
from typing import Optional
import math


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    Some drivers (SQLite) drop tzinfo on the way back from the store, so
    every datetime read from a row goes through here.

    Args:
        dt: Datetime or None

    Returns:
        Timezone-aware UTC datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_date(dt: datetime | date) -> str:
    """
    Format the UTC calendar day of a date/datetime as YYYY-MM-DD.

    Args:
        dt: Date or datetime

    Returns:
        ISO date string
    """
    if isinstance(dt, datetime):
        return ensure_utc(dt).date().isoformat()
    return dt.isoformat()


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as an ISO-8601 UTC string."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def start_of_week(dt: datetime | date) -> date:
    """
    Get the Sunday that starts the week containing the given day.

    Args:
        dt: Date or datetime (datetimes use their UTC calendar day)

    Returns:
        Date of the Sunday on or before the given day
    """
    if isinstance(dt, datetime):
        dt = ensure_utc(dt).date()
    # weekday(): Monday=0 ... Sunday=6
    days_since_sunday = (dt.weekday() + 1) % 7
    return dt - timedelta(days=days_since_sunday)


def add_days(dt: datetime | date, days: int) -> datetime | date:
    """
    Add days to a date or datetime.

    Args:
        dt: Date or datetime
        days: Number of days to add (can be negative)

    Returns:
        New date or datetime
    """
    return dt + timedelta(days=days)


def add_hours(dt: datetime, hours: float) -> datetime:
    """
    Add hours to a datetime.

    Args:
        dt: Datetime
        hours: Number of hours to add (can be negative)

    Returns:
        New datetime
    """
    return dt + timedelta(hours=hours)


def minutes_between(start: datetime, end: datetime) -> float:
    """
    Calculate number of minutes between two datetimes.

    Args:
        start: Start datetime
        end: End datetime

    Returns:
        Number of minutes (can be fractional)
    """
    delta = ensure_utc(end) - ensure_utc(start)
    return delta.total_seconds() / 60


def hours_between(start: datetime, end: datetime) -> float:
    """
    Calculate number of hours between two datetimes.

    Args:
        start: Start datetime
        end: End datetime

    Returns:
        Number of hours (can be fractional)
    """
    delta = ensure_utc(end) - ensure_utc(start)
    return delta.total_seconds() / 3600


def whole_hours_between(start: datetime, end: datetime) -> int:
    """Number of full hours elapsed between two datetimes (floored)."""
    return math.floor(hours_between(start, end))
