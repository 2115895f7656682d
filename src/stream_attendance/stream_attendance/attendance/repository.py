from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, BulkAttendanceEntry, NewAttendanceRecord, NewBulkAttendanceEntry


class AttendanceRepository(Protocol):
    def upsert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        """Insert, or on an existing slot key update status and marked_at only."""

        raise NotImplementedError

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        """Insert only. Raises DuplicateRecordError if the slot key already exists."""

        raise NotImplementedError

    def list_for_user(
        self,
        *,
        user_id: str,
        stream_id: str,
        start: date,
        end: date,
        subject_name: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def delete_slot_records(self, *, stream_id: str, class_date: date, subject_name: str, subject_index: int) -> int:
        """Delete every member's replacement-slot record for one slot. Returns rows removed."""

        raise NotImplementedError

    def move_slot_records(
        self, *, stream_id: str, class_date: date, subject_name: str, from_index: int, to_index: int
    ) -> int:
        """Re-key replacement-slot records after the slot's subject index shifted."""

        raise NotImplementedError

    def create_bulk_entry(self, entry: NewBulkAttendanceEntry) -> BulkAttendanceEntry:
        raise NotImplementedError

    def list_bulk_entries(self, *, user_id: str, stream_id: str) -> Sequence[BulkAttendanceEntry]:
        """Newest first."""

        raise NotImplementedError
