from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Union

DayLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def normalize_day(value: DayLike) -> date:
    """Drop any time-of-day component: every date in the engine is day-granular."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(value.strip()[:10])


def iso_day_of_week(day: date) -> int:
    """ISO weekday, 1=Monday .. 7=Sunday."""
    return day.isoweekday()


def days_in_range(start: date, end: date) -> Iterator[date]:
    """Every day from start to end, both inclusive. Empty when end < start."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def format_day(day: date) -> str:
    return day.strftime("%Y-%m-%d")


def today() -> date:
    """Current local date.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().date()


def now_local() -> datetime:
    return datetime.now()
