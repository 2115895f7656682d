from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from .model import Timetable
from .repository import TimetableRepository


def select_active(candidates: Iterable[Timetable], day: date) -> Optional[Timetable]:
    """Pick the version active on `day` from an already-fetched candidate set.

    The version with the greatest valid_from <= day wins; it is active only if it has not
    been closed before `day`. A closed latest version means no timetable that day, even
    if an older version would still cover it.
    """

    latest: Optional[Timetable] = None
    for tt in candidates:
        if tt.valid_from <= day and (latest is None or tt.valid_from > latest.valid_from):
            latest = tt

    if latest is None or (latest.valid_until is not None and latest.valid_until < day):
        return None
    return latest


class TimetableResolver:
    def __init__(self, timetables: TimetableRepository):
        self._timetables = timetables

    def active_on(self, stream_id: str, day: date) -> Optional[Timetable]:
        return select_active(self.candidates(stream_id, day, day), day)

    def candidates(self, stream_id: str, start: date, end: date) -> list[Timetable]:
        return list(self._timetables.list_for_range(stream_id=stream_id, start=start, end=end))
