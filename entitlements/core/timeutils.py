"""
UTC time helpers.

All timestamps are stored as naive UTC datetimes so that values read back
from SQLite and PostgreSQL compare the same way.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def get_period_key(date: Optional[datetime] = None) -> str:
    """Generate period key string in YYYY-MM format."""
    if date is None:
        date = utcnow()
    return date.strftime("%Y-%m")
