"""
Date and time helpers shared by the tax engine, exports and jobs.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]

IST = timezone(timedelta(hours=5, minutes=30), "IST")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_date(value: datetime) -> date:
    """Calendar date of ``value`` in Indian Standard Time."""
    return ensure_aware(value).astimezone(IST).date()


def format_indian_date(value: datetime | date) -> str:
    """
    Format a date the way en-IN locales print it: day/month/year without
    zero padding (``15/1/2024``). Datetimes are converted to IST first.
    """
    if isinstance(value, datetime):
        value = local_date(value)
    return f"{value.day}/{value.month}/{value.year}"


def date_key(value: datetime | date) -> str:
    """ISO calendar date (``2024-01-15``) used for grouping and file names."""
    if isinstance(value, datetime):
        value = local_date(value)
    return value.isoformat()


def file_timestamp(value: datetime) -> str:
    """Compact timestamp used in generated file names."""
    return str(int(ensure_aware(value).timestamp() * 1000))
