from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Mapping, Optional, Sequence

from ..common import datetime_utils
from ..common.validators import optional_text, require_date_range, require_non_empty, require_non_negative_int
from ..core.constants import DEFAULT_VIEW_DAYS, EPOCH
from ..core.enums import AttendanceStatus, OverrideType, StreamRole
from ..core.exceptions import ForbiddenError, ValidationError
from ..overrides.overlay import find_slot
from ..schedule.window import ScheduleWindowLoader
from ..streams.service import StreamAccessService
from .model import (
    AttendanceRecord,
    BulkAttendanceEntry,
    BulkRecordResult,
    NewAttendanceRecord,
    NewBulkAttendanceEntry,
    WeeklyViewEntry,
)
from .repository import AttendanceRepository

MARKABLE_STATUSES = (AttendanceStatus.OCCURRED, AttendanceStatus.MISSED)


def _markable_status(value) -> AttendanceStatus:
    try:
        status = AttendanceStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}") from None
    if status not in MARKABLE_STATUSES:
        raise ValidationError("Status must be OCCURRED or MISSED")
    return status


class AttendanceLedger:
    """Per-user marks, validated against the effective (overridden) schedule."""

    def __init__(
        self,
        records: AttendanceRepository,
        access: StreamAccessService,
        windows: ScheduleWindowLoader,
    ):
        self._records = records
        self._access = access
        self._windows = windows

    def mark(
        self,
        *,
        user_id: str,
        stream_id: str,
        subject_name: str,
        class_date: date,
        subject_index: int,
        status,
        course_code: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        self._access.ensure_member(stream_id, user_id)
        status = _markable_status(status)
        subject_name = require_non_empty(subject_name, "subject_name")
        subject_index = require_non_negative_int(subject_index, "subject_index")

        window = self._windows.load(stream_id, class_date, class_date)
        slot = find_slot(window.effective, class_date=class_date, subject_name=subject_name, subject_index=subject_index)
        if slot is None:
            raise ValidationError(
                f"No {subject_name} class (index {subject_index}) is scheduled on {datetime_utils.format_day(class_date)}."
            )
        if slot.is_globally_cancelled:
            verb = "replaced" if slot.override_type == OverrideType.REPLACED else "cancelled"
            raise ValidationError(f"This class was {verb} by an admin and cannot be marked.")

        return self._records.upsert(
            NewAttendanceRecord(
                user_id=user_id,
                stream_id=stream_id,
                subject_name=subject_name,
                class_date=class_date,
                subject_index=subject_index,
                is_replacement=slot.stored_as_replacement,
                status=status,
                marked_at=now or datetime_utils.now_local(),
                course_code=optional_text(course_code) or slot.course_code,
                original_subject_name=slot.original_subject_name,
                original_start_time=slot.original_start_time,
                original_end_time=slot.original_end_time,
            )
        )

    def effective_weekly_view(
        self,
        *,
        user_id: str,
        stream_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: date | None = None,
    ) -> list[WeeklyViewEntry]:
        """Effective slots in [start, end] with the user's status; unmarked slots read as MISSED."""

        self._access.ensure_member(stream_id, user_id)
        if start is None and end is not None:
            start = end - timedelta(days=DEFAULT_VIEW_DAYS - 1)
        start = start or today or datetime_utils.today()
        end = end or start + timedelta(days=DEFAULT_VIEW_DAYS - 1)
        require_date_range(start, end)

        window = self._windows.load(stream_id, start, end)
        marks = {
            r.slot_key: r
            for r in self._records.list_for_user(user_id=user_id, stream_id=stream_id, start=start, end=end)
        }

        view: list[WeeklyViewEntry] = []
        for slot in window.effective:
            record = marks.get((slot.date, slot.subject_name, slot.subject_index, slot.stored_as_replacement))
            if slot.is_globally_cancelled:
                status = AttendanceStatus.CANCELLED
            elif record is not None:
                status = record.status
            else:
                status = AttendanceStatus.MISSED
            view.append(
                WeeklyViewEntry(
                    slot=slot,
                    status=status,
                    record_id=record.record_id if record else None,
                    marked_at=record.marked_at if record else None,
                )
            )
        return view

    def records(
        self,
        *,
        user_id: str,
        stream_id: str,
        target_user_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        subject_name: Optional[str] = None,
        today: date | None = None,
    ) -> Sequence[AttendanceRecord]:
        role = self._access.ensure_member(stream_id, user_id)
        target_user_id = target_user_id or user_id
        if target_user_id != user_id and role != StreamRole.ADMIN:
            raise ForbiddenError("Only stream admins can view another member's records.")

        start = start or EPOCH
        end = end or today or datetime_utils.today()
        require_date_range(start, end)
        return self._records.list_for_user(
            user_id=target_user_id,
            stream_id=stream_id,
            start=start,
            end=end,
            subject_name=optional_text(subject_name),
        )

    def record_bulk(
        self,
        *,
        user_id: str,
        stream_id: str,
        start_date: date,
        attendance: Mapping[str, int],
        end_date: Optional[date] = None,
        today: date | None = None,
    ) -> BulkRecordResult:
        """Store self-reported per-subject attended counts against the held classes in range.

        Every subject is validated before anything is written.
        """

        self._access.ensure_member(stream_id, user_id)
        end_date = end_date or today or datetime_utils.today()
        require_date_range(start_date, end_date)
        if not attendance:
            raise ValidationError("attendance must list at least one subject")

        tally = self._windows.load(stream_id, start_date, end_date).tally()
        known = set(tally.subjects())

        accepted: list[NewBulkAttendanceEntry] = []
        skipped: list[str] = []
        for subject_name, attended in attendance.items():
            attended = require_non_negative_int(attended, f"attendance[{subject_name}]")
            if subject_name not in known:
                skipped.append(subject_name)
                continue
            held = tally.held(subject_name)
            if attended > held:
                raise ValidationError(
                    f"Attended classes ({attended}) for {subject_name} cannot exceed held classes ({held})."
                )
            accepted.append(
                NewBulkAttendanceEntry(
                    user_id=user_id,
                    stream_id=stream_id,
                    subject_name=subject_name,
                    course_code=tally.course_codes.get(subject_name),
                    attended_classes=attended,
                    total_held_classes=held,
                    start_date=start_date,
                    end_date=end_date,
                )
            )

        created = tuple(self._records.create_bulk_entry(e) for e in accepted)
        return BulkRecordResult(created=created, skipped_subjects=tuple(skipped))

    def bulk_entries(self, *, user_id: str, stream_id: str) -> Sequence[BulkAttendanceEntry]:
        self._access.ensure_member(stream_id, user_id)
        return self._records.list_bulk_entries(user_id=user_id, stream_id=stream_id)
