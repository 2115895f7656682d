from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import days_in_range, iso_day_of_week
from ..core.constants import MISSING_TIME_SORT_KEY
from ..timetables.model import Timetable
from ..timetables.resolver import select_active


@dataclass(frozen=True)
class ScheduleEntry:
    """A weekly timetable slot materialized on a concrete date."""

    date: date
    day_of_week: int
    subject_name: str
    course_code: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    subject_index: int = 0


def time_sort_key(value: Optional[str]) -> str:
    return value or MISSING_TIME_SORT_KEY


def _index_order(entry: ScheduleEntry) -> tuple:
    # Start time decides; the rest only breaks ties between otherwise-equal slots so the
    # result never depends on input (row) order.
    return (
        entry.date,
        entry.subject_name,
        time_sort_key(entry.start_time),
        time_sort_key(entry.end_time),
        entry.course_code or "",
    )


def assign_indices(entries: Iterable[ScheduleEntry]) -> list[ScheduleEntry]:
    """Number same-(date, subject) entries 0, 1, 2... in (start time, missing last) order.

    Returns the entries in indexing order: date, subject name, start time.
    """

    counters: dict[tuple[date, str], int] = {}
    out: list[ScheduleEntry] = []
    for entry in sorted(entries, key=_index_order):
        slot = (entry.date, entry.subject_name)
        index = counters.get(slot, 0)
        counters[slot] = index + 1
        out.append(replace(entry, subject_index=index))
    return out


def display_order(entry) -> tuple:
    """Calendar order used for every schedule-shaped output: date, start time, subject."""
    return (entry.date, time_sort_key(entry.start_time), entry.subject_name, entry.subject_index)


def expand(candidates: Sequence[Timetable], start: date, end: date) -> list[ScheduleEntry]:
    """Materialize the weekly timetables into per-date slots for [start, end].

    `candidates` must hold every version intersecting the range (fetched once); each day
    is resolved against it in memory.
    """

    raw: list[ScheduleEntry] = []
    for day in days_in_range(start, end):
        timetable = select_active(candidates, day)
        if timetable is None:
            continue
        weekday = iso_day_of_week(day)
        for entry in timetable.entries_for_weekday(weekday):
            raw.append(
                ScheduleEntry(
                    date=day,
                    day_of_week=weekday,
                    subject_name=entry.subject_name,
                    course_code=entry.course_code,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                )
            )
    return sorted(assign_indices(raw), key=display_order)
