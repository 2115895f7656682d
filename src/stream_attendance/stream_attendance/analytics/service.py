from __future__ import annotations

from datetime import date
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common import datetime_utils
from ..common.numbers import percentage
from ..common.validators import optional_text, require_date_range
from ..core.constants import EPOCH
from ..core.enums import AttendanceStatus, StreamRole
from ..core.exceptions import ForbiddenError
from ..overrides.model import OverrideKey
from ..schedule.window import ScheduleWindowLoader
from ..streams.service import StreamAccessService
from ..timetables.repository import TimetableRepository
from .model import StreamStats, SubjectStats


class AnalyticsService:
    def __init__(
        self,
        records: AttendanceRepository,
        timetables: TimetableRepository,
        access: StreamAccessService,
        windows: ScheduleWindowLoader,
    ):
        self._records = records
        self._timetables = timetables
        self._access = access
        self._windows = windows

    def default_start(self, stream_id: str) -> date:
        """Earliest timetable valid_from of the stream, else EPOCH."""
        return self._timetables.earliest_valid_from(stream_id) or EPOCH

    def stream_stats(
        self,
        *,
        user_id: str,
        stream_id: str,
        target_user_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        subject_name: Optional[str] = None,
        today: date | None = None,
    ) -> StreamStats:
        role = self._access.ensure_member(stream_id, user_id)
        target_user_id = target_user_id or user_id
        if target_user_id != user_id:
            if role != StreamRole.ADMIN:
                raise ForbiddenError("Only stream admins can view another member's analytics.")
            self._access.ensure_member(stream_id, target_user_id)

        if start is not None and end is not None:
            require_date_range(start, end)
        start = start or self.default_start(stream_id)
        end = end or today or datetime_utils.today()
        subject_name = optional_text(subject_name)
        if start > end:
            # Defaulted bounds with no day in between, e.g. a term that has not started yet.
            return StreamStats(
                stream_id=stream_id,
                user_id=target_user_id,
                start=start,
                end=end,
                subjects=(),
                total_held=0,
                total_attended=0,
                overall_percentage=None,
            )

        tally = self._windows.load(stream_id, start, end).tally(subject_name)
        occurred = self._records.list_for_user(
            user_id=target_user_id,
            stream_id=stream_id,
            start=start,
            end=end,
            subject_name=subject_name,
            status=AttendanceStatus.OCCURRED,
        )

        attended: dict[str, int] = {}
        for r in occurred:
            # A mark on a regular slot that was later cancelled or replaced no longer counts.
            if not r.is_replacement and OverrideKey(r.class_date, r.subject_name, r.subject_index) in tally.cancelled_keys:
                continue
            attended[r.subject_name] = attended.get(r.subject_name, 0) + 1

        rows = []
        for subject in tally.subjects():
            held = tally.held(subject)
            count = attended.get(subject, 0)
            rows.append(
                SubjectStats(
                    subject_name=subject,
                    course_code=tally.course_codes.get(subject),
                    scheduled=tally.scheduled[subject],
                    cancelled=tally.cancelled[subject],
                    replacements=tally.replacements[subject],
                    held=held,
                    attended=count,
                    percentage=percentage(count, held),
                )
            )

        total_held = sum(r.held for r in rows)
        total_attended = sum(r.attended for r in rows)
        return StreamStats(
            stream_id=stream_id,
            user_id=target_user_id,
            start=start,
            end=end,
            subjects=tuple(rows),
            total_held=total_held,
            total_attended=total_attended,
            overall_percentage=percentage(total_attended, total_held),
        )
