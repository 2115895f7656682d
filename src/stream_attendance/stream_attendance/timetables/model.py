from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class NewTimetableEntry:
    """One weekly slot as submitted by an admin, before it is stored."""

    day_of_week: int
    subject_name: str
    course_code: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True)
class TimetableEntry:
    """Domain entity: a weekly recurring slot. Immutable once created."""

    entry_id: int
    timetable_id: int
    day_of_week: int
    subject_name: str
    course_code: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True)
class Timetable:
    """Domain entity: one version of a stream's weekly schedule.

    valid_from and valid_until are inclusive days; valid_until=None means open-ended.
    """

    timetable_id: int
    stream_id: str
    name: str
    valid_from: date
    valid_until: Optional[date]
    entries: tuple[TimetableEntry, ...] = ()
    created_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        return self.valid_from <= day and (self.valid_until is None or self.valid_until >= day)

    def entries_for_weekday(self, day_of_week: int) -> list[TimetableEntry]:
        return [e for e in self.entries if e.day_of_week == day_of_week]
