"""In-memory repositories shared by the service and controller tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from src.stream_attendance.stream_attendance.attendance.model import (
    AttendanceRecord,
    BulkAttendanceEntry,
    NewAttendanceRecord,
    NewBulkAttendanceEntry,
)
from src.stream_attendance.stream_attendance.container import wire_services
from src.stream_attendance.stream_attendance.core.enums import StreamRole
from src.stream_attendance.stream_attendance.core.exceptions import DuplicateRecordError
from src.stream_attendance.stream_attendance.streams.model import StreamMembership
from src.stream_attendance.stream_attendance.timetables.model import Timetable, TimetableEntry

T0 = datetime(2024, 1, 1, 9, 0)


class InMemoryStreams:
    def __init__(self, members: dict[str, dict[str, StreamRole]]):
        # stream_id -> {user_id: role}, in join order
        self.members = members

    def exists(self, stream_id: str) -> bool:
        return stream_id in self.members

    def get_membership(self, *, stream_id: str, user_id: str) -> Optional[StreamMembership]:
        role = self.members.get(stream_id, {}).get(user_id)
        return StreamMembership(stream_id=stream_id, user_id=user_id, role=role) if role else None

    def member_user_ids(self, stream_id: str):
        return list(self.members.get(stream_id, {}))


class InMemoryTimetables:
    def __init__(self):
        self.by_id: dict[int, Timetable] = {}
        self._id = 0
        self._entry_id = 0
        self.range_calls = 0

    def create(self, *, stream_id, name, valid_from, valid_until, entries) -> Timetable:
        self._id += 1
        stored = []
        for e in entries:
            self._entry_id += 1
            stored.append(
                TimetableEntry(
                    entry_id=self._entry_id,
                    timetable_id=self._id,
                    day_of_week=e.day_of_week,
                    subject_name=e.subject_name,
                    course_code=e.course_code,
                    start_time=e.start_time,
                    end_time=e.end_time,
                )
            )
        tt = Timetable(
            timetable_id=self._id,
            stream_id=stream_id,
            name=name,
            valid_from=valid_from,
            valid_until=valid_until,
            entries=tuple(stored),
            created_at=T0 + timedelta(minutes=self._id),
        )
        self.by_id[tt.timetable_id] = tt
        return tt

    def _for_stream(self, stream_id: str) -> list[Timetable]:
        return sorted((t for t in self.by_id.values() if t.stream_id == stream_id), key=lambda t: t.valid_from)

    def get_by_id(self, timetable_id: int) -> Optional[Timetable]:
        return self.by_id.get(timetable_id)

    def latest_for_stream(self, stream_id: str) -> Optional[Timetable]:
        items = self._for_stream(stream_id)
        return items[-1] if items else None

    def next_after(self, *, stream_id: str, valid_from: date) -> Optional[Timetable]:
        for t in self._for_stream(stream_id):
            if t.valid_from > valid_from:
                return t
        return None

    def earliest_valid_from(self, stream_id: str) -> Optional[date]:
        items = self._for_stream(stream_id)
        return items[0].valid_from if items else None

    def set_end_date(self, *, timetable_id: int, valid_until: Optional[date]) -> bool:
        tt = self.by_id.get(timetable_id)
        if tt is None:
            return False
        self.by_id[timetable_id] = replace(tt, valid_until=valid_until)
        return True

    def list_for_stream(self, stream_id: str):
        return list(reversed(self._for_stream(stream_id)))

    def list_for_range(self, *, stream_id: str, start: date, end: date):
        self.range_calls += 1
        return [
            t
            for t in self._for_stream(stream_id)
            if t.valid_from <= end and (t.valid_until is None or t.valid_until >= start)
        ]


class InMemoryOverrides:
    def __init__(self):
        self.by_key: dict[tuple, object] = {}
        self._id = 0
        self.range_calls = 0

    def upsert(self, override):
        slot = (override.stream_id, override.key)
        existing = self.by_key.get(slot)
        if existing is not None:
            saved = replace(override, override_id=existing.override_id, created_at=existing.created_at)
        else:
            self._id += 1
            saved = replace(override, override_id=self._id, created_at=T0 + timedelta(seconds=self._id))
        self.by_key[slot] = saved
        return saved

    def get(self, *, stream_id, key):
        return self.by_key.get((stream_id, key))

    def delete(self, *, stream_id, key) -> bool:
        return self.by_key.pop((stream_id, key), None) is not None

    def list_for_range(self, *, stream_id, start, end):
        self.range_calls += 1
        items = [
            ov for (sid, key), ov in self.by_key.items() if sid == stream_id and start <= key.class_date <= end
        ]
        return sorted(items, key=lambda ov: ov.key)


class InMemoryAttendance:
    def __init__(self, *, failing_users: tuple[str, ...] = ()):
        self.records: dict[tuple, AttendanceRecord] = {}
        self.bulk: list[BulkAttendanceEntry] = []
        self.failing_users = set(failing_users)
        self._id = 0

    @staticmethod
    def _key(r) -> tuple:
        return (r.user_id, r.stream_id, r.subject_name, r.class_date, r.subject_index, r.is_replacement)

    def _build(self, record: NewAttendanceRecord) -> AttendanceRecord:
        self._id += 1
        return AttendanceRecord(record_id=self._id, **vars(record))

    def upsert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        key = self._key(record)
        existing = self.records.get(key)
        if existing is not None:
            saved = replace(existing, status=record.status, marked_at=record.marked_at)
        else:
            saved = self._build(record)
        self.records[key] = saved
        return saved

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        if record.user_id in self.failing_users:
            raise ConnectionError("database unavailable")
        key = self._key(record)
        if key in self.records:
            raise DuplicateRecordError("duplicate")
        saved = self._build(record)
        self.records[key] = saved
        return saved

    def list_for_user(self, *, user_id, stream_id, start, end, subject_name=None, status=None):
        items = [
            r
            for r in self.records.values()
            if r.user_id == user_id
            and r.stream_id == stream_id
            and start <= r.class_date <= end
            and (subject_name is None or r.subject_name == subject_name)
            and (status is None or r.status == status)
        ]
        return sorted(items, key=lambda r: (r.class_date, r.subject_name, r.subject_index, r.is_replacement))

    def delete_slot_records(self, *, stream_id, class_date, subject_name, subject_index) -> int:
        doomed = [
            k
            for k, r in self.records.items()
            if r.stream_id == stream_id
            and r.class_date == class_date
            and r.subject_name == subject_name
            and r.subject_index == subject_index
            and r.is_replacement
        ]
        for k in doomed:
            del self.records[k]
        return len(doomed)

    def move_slot_records(self, *, stream_id, class_date, subject_name, from_index, to_index) -> int:
        moved = [
            r
            for r in self.records.values()
            if r.stream_id == stream_id
            and r.class_date == class_date
            and r.subject_name == subject_name
            and r.subject_index == from_index
            and r.is_replacement
        ]
        for r in moved:
            del self.records[self._key(r)]
            updated = replace(r, subject_index=to_index)
            self.records[self._key(updated)] = updated
        return len(moved)

    def create_bulk_entry(self, entry: NewBulkAttendanceEntry) -> BulkAttendanceEntry:
        saved = BulkAttendanceEntry(
            entry_id=len(self.bulk) + 1,
            calculated_at=T0 + timedelta(minutes=len(self.bulk)),
            **vars(entry),
        )
        self.bulk.append(saved)
        return saved

    def list_bulk_entries(self, *, user_id, stream_id):
        items = [e for e in self.bulk if e.user_id == user_id and e.stream_id == stream_id]
        return sorted(items, key=lambda e: (e.calculated_at, e.entry_id), reverse=True)


ADMIN = "admin-1"
STUDENT = "student-1"
OTHER_STUDENT = "student-2"
OUTSIDER = "outsider"
STREAM = "stream-1"


def make_container(*, failing_users: tuple[str, ...] = ()):
    """Container over fresh in-memory repositories with one stream: an admin and two students."""
    streams = InMemoryStreams(
        {
            STREAM: {
                ADMIN: StreamRole.ADMIN,
                STUDENT: StreamRole.MEMBER,
                OTHER_STUDENT: StreamRole.MEMBER,
            }
        }
    )
    return wire_services(
        streams_repo=streams,
        timetables_repo=InMemoryTimetables(),
        overrides_repo=InMemoryOverrides(),
        attendance_repo=InMemoryAttendance(failing_users=failing_users),
    )
