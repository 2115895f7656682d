from __future__ import annotations

from datetime import date

from ..common.validators import require_date_range
from ..overrides.overlay import EffectiveSlot
from ..streams.service import StreamAccessService
from ..timetables.resolver import TimetableResolver
from .expander import ScheduleEntry, expand
from .window import ScheduleWindowLoader


class ScheduleService:
    def __init__(self, access: StreamAccessService, resolver: TimetableResolver, windows: ScheduleWindowLoader):
        self._access = access
        self._resolver = resolver
        self._windows = windows

    def expanded_schedule(self, *, user_id: str, stream_id: str, start: date, end: date) -> list[ScheduleEntry]:
        """Base timetable slots per date, ignoring overrides."""
        self._access.ensure_member(stream_id, user_id)
        require_date_range(start, end)
        return expand(self._resolver.candidates(stream_id, start, end), start, end)

    def effective_schedule(self, *, user_id: str, stream_id: str, start: date, end: date) -> list[EffectiveSlot]:
        self._access.ensure_member(stream_id, user_id)
        require_date_range(start, end)
        return self._windows.load(stream_id, start, end).effective
