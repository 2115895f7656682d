from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import NewTimetableEntry, Timetable


class TimetableRepository(Protocol):
    def create(
        self,
        *,
        stream_id: str,
        name: str,
        valid_from: date,
        valid_until: Optional[date],
        entries: Sequence[NewTimetableEntry],
    ) -> Timetable:
        """Insert the timetable and its entries atomically."""

        raise NotImplementedError

    def get_by_id(self, timetable_id: int) -> Optional[Timetable]:
        raise NotImplementedError

    def latest_for_stream(self, stream_id: str) -> Optional[Timetable]:
        """The version with the greatest valid_from (entries not required)."""

        raise NotImplementedError

    def next_after(self, *, stream_id: str, valid_from: date) -> Optional[Timetable]:
        """The version starting soonest after valid_from, if any."""

        raise NotImplementedError

    def earliest_valid_from(self, stream_id: str) -> Optional[date]:
        raise NotImplementedError

    def set_end_date(self, *, timetable_id: int, valid_until: Optional[date]) -> bool:
        raise NotImplementedError

    def list_for_stream(self, stream_id: str) -> Sequence[Timetable]:
        """All versions with entries, newest valid_from first."""

        raise NotImplementedError

    def list_for_range(self, *, stream_id: str, start: date, end: date) -> Sequence[Timetable]:
        """Versions whose validity window intersects [start, end], with entries.

        One round trip for the whole range; callers resolve individual days in memory.
        """

        raise NotImplementedError
