# backend/academy/date_utils.py
import calendar
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .config import settings


def ensure_end_after_start(start: Optional[date], end: Optional[date]) -> None:
    """Raise ValueError if end exists and is before start."""
    if start and end and end < start:
        raise ValueError("end_date must be the same as or after start_date.")


def utcnow() -> datetime:
    # naive UTC, matching what the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)


def academy_now() -> datetime:
    return datetime.now(ZoneInfo(settings.ACADEMY_TIMEZONE))


def academy_today() -> date:
    return academy_now().date()


def local_day_bounds_utc(day: date) -> Tuple[datetime, datetime]:
    """Naive-UTC [start, end) of an academy-local calendar day."""
    tz = ZoneInfo(settings.ACADEMY_TIMEZONE)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def daterange(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def minutes_since_midnight(t: time) -> int:
    return t.hour * 60 + t.minute


def month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"
