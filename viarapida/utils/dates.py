# viarapida/utils/dates.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_millis(dt: datetime) -> datetime:
    """Drop sub-millisecond precision, which BSON dates cannot hold."""
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def utc_now() -> datetime:
    return to_millis(datetime.now(timezone.utc))


def hours_between(start: datetime, end: datetime) -> int:
    """Whole hours from start to end, truncated toward zero (negative if end is earlier)."""
    return int((ensure_utc(end) - ensure_utc(start)) / timedelta(hours=1))


def day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar day in tz_name, both in UTC."""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
