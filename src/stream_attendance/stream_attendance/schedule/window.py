from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from functools import cached_property
from typing import Optional

from ..overrides.model import ClassOverride
from ..overrides.overlay import EffectiveSlot, apply_overrides, classify_overrides
from ..overrides.repository import OverrideRepository
from ..timetables.model import Timetable
from ..timetables.repository import TimetableRepository
from .expander import ScheduleEntry, expand


@dataclass(frozen=True)
class ScheduleTally:
    """Per-subject counts over a window. All held figures come from here."""

    scheduled: Counter
    cancelled: Counter
    replacements: Counter
    course_codes: dict
    cancelled_keys: frozenset

    def subjects(self) -> list[str]:
        return sorted(set(self.scheduled) | set(self.replacements))

    def held(self, subject_name: str) -> int:
        return max(0, self.scheduled[subject_name] - self.cancelled[subject_name]) + self.replacements[subject_name]

    def total_held(self) -> int:
        """The held formula applied once to the totals across subjects.

        Used for stream-wide projections. Stream stats sum held(subject) instead, so the two
        differ when a subject has more cancellations than scheduled classes.
        """
        scheduled = sum(self.scheduled.values())
        cancelled = sum(self.cancelled.values())
        return max(0, scheduled - cancelled) + sum(self.replacements.values())


@dataclass(frozen=True)
class ScheduleWindow:
    """Timetables and overrides for one stream and date range, fetched once."""

    stream_id: str
    start: date
    end: date
    timetables: tuple[Timetable, ...]
    overrides: tuple[ClassOverride, ...]

    @cached_property
    def base(self) -> list[ScheduleEntry]:
        return expand(self.timetables, self.start, self.end)

    @cached_property
    def effective(self) -> list[EffectiveSlot]:
        return apply_overrides(self.base, self.overrides)

    def tally(self, subject_name: Optional[str] = None) -> ScheduleTally:
        scheduled: Counter = Counter()
        course_codes: dict[str, Optional[str]] = {}
        for entry in self.base:
            if subject_name is not None and entry.subject_name != subject_name:
                continue
            scheduled[entry.subject_name] += 1
            course_codes.setdefault(entry.subject_name, entry.course_code)

        counts = classify_overrides(self.overrides, subject_name)
        for subject, code in counts.replacement_course_codes.items():
            course_codes.setdefault(subject, code)

        return ScheduleTally(
            scheduled=scheduled,
            cancelled=counts.cancelled,
            replacements=counts.replacements,
            course_codes=course_codes,
            cancelled_keys=counts.cancelled_keys,
        )


class ScheduleWindowLoader:
    def __init__(self, timetables: TimetableRepository, overrides: OverrideRepository):
        self._timetables = timetables
        self._overrides = overrides

    def load(self, stream_id: str, start: date, end: date) -> ScheduleWindow:
        timetables = self._timetables.list_for_range(stream_id=stream_id, start=start, end=end)
        overrides = self._overrides.list_for_range(stream_id=stream_id, start=start, end=end)
        return ScheduleWindow(
            stream_id=stream_id,
            start=start,
            end=end,
            timetables=tuple(timetables),
            overrides=tuple(overrides),
        )
