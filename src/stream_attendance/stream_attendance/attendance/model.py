from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus
from ..overrides.overlay import EffectiveSlot


@dataclass(frozen=True)
class NewAttendanceRecord:
    """A mark about to be written. The first six fields form the unique slot key."""

    user_id: str
    stream_id: str
    subject_name: str
    class_date: date
    subject_index: int
    is_replacement: bool
    status: AttendanceStatus
    marked_at: datetime
    course_code: Optional[str] = None
    original_subject_name: Optional[str] = None
    original_start_time: Optional[str] = None
    original_end_time: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's stored mark for one concrete class instance."""

    record_id: int
    user_id: str
    stream_id: str
    subject_name: str
    class_date: date
    subject_index: int
    is_replacement: bool
    status: AttendanceStatus
    marked_at: Optional[datetime] = None
    course_code: Optional[str] = None
    original_subject_name: Optional[str] = None
    original_start_time: Optional[str] = None
    original_end_time: Optional[str] = None

    @property
    def slot_key(self) -> tuple[date, str, int, bool]:
        return (self.class_date, self.subject_name, self.subject_index, self.is_replacement)


@dataclass(frozen=True)
class WeeklyViewEntry:
    """An effective slot joined with the viewing user's mark."""

    slot: EffectiveSlot
    status: AttendanceStatus
    record_id: Optional[int] = None
    marked_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewBulkAttendanceEntry:
    user_id: str
    stream_id: str
    subject_name: str
    course_code: Optional[str]
    attended_classes: int
    total_held_classes: int
    start_date: date
    end_date: date


@dataclass(frozen=True)
class BulkAttendanceEntry:
    """Self-reported aggregate snapshot. Append-only, never reconciled with daily marks."""

    entry_id: int
    user_id: str
    stream_id: str
    subject_name: str
    course_code: Optional[str]
    attended_classes: int
    total_held_classes: int
    start_date: date
    end_date: date
    calculated_at: Optional[datetime] = None


@dataclass(frozen=True)
class BulkRecordResult:
    created: tuple[BulkAttendanceEntry, ...]
    skipped_subjects: tuple[str, ...] = ()
