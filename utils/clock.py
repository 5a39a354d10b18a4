from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """UTC wall-clock time without tzinfo, the form DateTime columns store."""
    return ensure_utc(value).replace(tzinfo=None)


def store_now(tz_name: str) -> datetime:
    """Current wall-clock time in the store's timezone."""
    return datetime.now(ZoneInfo(tz_name))


def day_bounds_utc(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """Naive UTC ``[start, end)`` of a calendar day in the store's timezone."""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
