from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, normalize_hhmm
from .model import AttendanceRecord, BulkAttendanceEntry, NewAttendanceRecord, NewBulkAttendanceEntry
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    record_id, user_id, stream_id, subject_name, class_date, subject_index, is_replacement, status,
    marked_at, course_code, original_subject_name, original_start_time, original_end_time
"""

_SLOT_WHERE = """
    user_id=%s AND stream_id=%s AND subject_name=%s AND class_date=%s
    AND subject_index=%s AND is_replacement=%s
"""

_INSERT_RECORD = """
    INSERT INTO attendance_records(
        user_id, stream_id, subject_name, class_date, subject_index, is_replacement, status,
        marked_at, course_code, original_subject_name, original_start_time, original_end_time
    )
    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        user_id=str(r["user_id"]),
        stream_id=str(r["stream_id"]),
        subject_name=r["subject_name"],
        class_date=r["class_date"],
        subject_index=int(r["subject_index"]),
        is_replacement=bool(r["is_replacement"]),
        status=AttendanceStatus(r["status"]),
        marked_at=r.get("marked_at"),
        course_code=r.get("course_code") or None,
        original_subject_name=r.get("original_subject_name") or None,
        original_start_time=normalize_hhmm(r.get("original_start_time")),
        original_end_time=normalize_hhmm(r.get("original_end_time")),
    )


def _row_to_bulk_entry(r: dict) -> BulkAttendanceEntry:
    return BulkAttendanceEntry(
        entry_id=int(r["entry_id"]),
        user_id=str(r["user_id"]),
        stream_id=str(r["stream_id"]),
        subject_name=r["subject_name"],
        course_code=r.get("course_code") or None,
        attended_classes=int(r["attended_classes"]),
        total_held_classes=int(r["total_held_classes"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        calculated_at=r.get("calculated_at"),
    )


def _record_params(record: NewAttendanceRecord) -> tuple:
    return (
        record.user_id,
        record.stream_id,
        record.subject_name,
        record.class_date,
        int(record.subject_index),
        1 if record.is_replacement else 0,
        record.status.value,
        record.marked_at,
        record.course_code,
        record.original_subject_name,
        record.original_start_time,
        record.original_end_time,
    )


def _slot_params(record: NewAttendanceRecord) -> tuple:
    return _record_params(record)[:6]


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _INSERT_RECORD
                + """
                ON DUPLICATE KEY UPDATE status=VALUES(status), marked_at=VALUES(marked_at)
                """,
                _record_params(record),
            )
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendance_records WHERE {_SLOT_WHERE}", _slot_params(record))
            return _row_to_record(fetchone(cur))

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(_INSERT_RECORD, _record_params(record))
                record_id = int(cur.lastrowid)
        except IntegrityError as exc:
            if is_duplicate_key(exc):
                raise DuplicateRecordError("Attendance record already exists for this slot") from exc
            raise

        return AttendanceRecord(
            record_id=record_id,
            user_id=record.user_id,
            stream_id=record.stream_id,
            subject_name=record.subject_name,
            class_date=record.class_date,
            subject_index=record.subject_index,
            is_replacement=record.is_replacement,
            status=record.status,
            marked_at=record.marked_at,
            course_code=record.course_code,
            original_subject_name=record.original_subject_name,
            original_start_time=record.original_start_time,
            original_end_time=record.original_end_time,
        )

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
        sql = f"""
            SELECT {_RECORD_COLUMNS} FROM attendance_records
            WHERE user_id=%s AND stream_id=%s AND class_date BETWEEN %s AND %s
        """
        params: list = [user_id, stream_id, start, end]
        if subject_name:
            sql += " AND subject_name=%s"
            params.append(subject_name)
        if status is not None:
            sql += " AND status=%s"
            params.append(status.value)
        sql += " ORDER BY class_date ASC, subject_name ASC, subject_index ASC, is_replacement ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def delete_slot_records(self, *, stream_id: str, class_date: date, subject_name: str, subject_index: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM attendance_records
                WHERE stream_id=%s AND class_date=%s AND subject_name=%s AND subject_index=%s
                  AND is_replacement=1
                """,
                (stream_id, class_date, subject_name, int(subject_index)),
            )
            return int(cur.rowcount or 0)

    def move_slot_records(
        self, *, stream_id: str, class_date: date, subject_name: str, from_index: int, to_index: int
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records SET subject_index=%s
                WHERE stream_id=%s AND class_date=%s AND subject_name=%s AND subject_index=%s
                  AND is_replacement=1
                """,
                (int(to_index), stream_id, class_date, subject_name, int(from_index)),
            )
            return int(cur.rowcount or 0)

    def create_bulk_entry(self, entry: NewBulkAttendanceEntry) -> BulkAttendanceEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO bulk_attendance_entries(
                    user_id, stream_id, subject_name, course_code, attended_classes,
                    total_held_classes, start_date, end_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.user_id,
                    entry.stream_id,
                    entry.subject_name,
                    entry.course_code,
                    int(entry.attended_classes),
                    int(entry.total_held_classes),
                    entry.start_date,
                    entry.end_date,
                ),
            )
            entry_id = int(cur.lastrowid)
            cur.execute(
                """
                SELECT entry_id, user_id, stream_id, subject_name, course_code, attended_classes,
                       total_held_classes, start_date, end_date, calculated_at
                FROM bulk_attendance_entries
                WHERE entry_id=%s
                """,
                (entry_id,),
            )
            return _row_to_bulk_entry(fetchone(cur))

    def list_bulk_entries(self, *, user_id: str, stream_id: str) -> Sequence[BulkAttendanceEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entry_id, user_id, stream_id, subject_name, course_code, attended_classes,
                       total_held_classes, start_date, end_date, calculated_at
                FROM bulk_attendance_entries
                WHERE user_id=%s AND stream_id=%s
                ORDER BY calculated_at DESC, entry_id DESC
                """,
                (user_id, stream_id),
            )
            return [_row_to_bulk_entry(r) for r in fetchall(cur)]
