from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_hhmm, placeholders
from .model import NewTimetableEntry, Timetable, TimetableEntry
from .repository import TimetableRepository

_TIMETABLE_COLUMNS = "timetable_id, stream_id, name, valid_from, valid_until, created_at"


def _row_to_entry(r: dict) -> TimetableEntry:
    return TimetableEntry(
        entry_id=int(r["entry_id"]),
        timetable_id=int(r["timetable_id"]),
        day_of_week=int(r["day_of_week"]),
        subject_name=r["subject_name"],
        course_code=r.get("course_code") or None,
        start_time=normalize_hhmm(r.get("start_time")),
        end_time=normalize_hhmm(r.get("end_time")),
    )


def _row_to_timetable(r: dict, entries: Sequence[TimetableEntry] = ()) -> Timetable:
    return Timetable(
        timetable_id=int(r["timetable_id"]),
        stream_id=str(r["stream_id"]),
        name=r["name"],
        valid_from=r["valid_from"],
        valid_until=r.get("valid_until"),
        entries=tuple(entries),
        created_at=r.get("created_at"),
    )


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _attach_entries(self, cur, rows: list[dict]) -> list[Timetable]:
        if not rows:
            return []
        ids = [int(r["timetable_id"]) for r in rows]
        cur.execute(
            f"""
            SELECT entry_id, timetable_id, day_of_week, subject_name, course_code, start_time, end_time
            FROM timetable_entries
            WHERE timetable_id IN ({placeholders(ids)})
            ORDER BY entry_id ASC
            """,
            tuple(ids),
        )
        by_timetable: dict[int, list[TimetableEntry]] = defaultdict(list)
        for er in fetchall(cur):
            entry = _row_to_entry(er)
            by_timetable[entry.timetable_id].append(entry)
        return [_row_to_timetable(r, by_timetable.get(int(r["timetable_id"]), ())) for r in rows]

    def create(
        self,
        *,
        stream_id: str,
        name: str,
        valid_from: date,
        valid_until: Optional[date],
        entries: Sequence[NewTimetableEntry],
    ) -> Timetable:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO timetables(stream_id, name, valid_from, valid_until) VALUES(%s,%s,%s,%s)",
                (stream_id, name, valid_from, valid_until),
            )
            timetable_id = int(cur.lastrowid)
            cur.executemany(
                """
                INSERT INTO timetable_entries(timetable_id, day_of_week, subject_name, course_code, start_time, end_time)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                [
                    (timetable_id, e.day_of_week, e.subject_name, e.course_code, e.start_time, e.end_time)
                    for e in entries
                ],
            )
            cur.execute(f"SELECT {_TIMETABLE_COLUMNS} FROM timetables WHERE timetable_id=%s", (timetable_id,))
            return self._attach_entries(cur, [fetchone(cur)])[0]

    def get_by_id(self, timetable_id: int) -> Optional[Timetable]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TIMETABLE_COLUMNS} FROM timetables WHERE timetable_id=%s", (int(timetable_id),))
            r = fetchone(cur)
            if not r:
                return None
            return self._attach_entries(cur, [r])[0]

    def latest_for_stream(self, stream_id: str) -> Optional[Timetable]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TIMETABLE_COLUMNS} FROM timetables WHERE stream_id=%s ORDER BY valid_from DESC LIMIT 1",
                (stream_id,),
            )
            r = fetchone(cur)
            return _row_to_timetable(r) if r else None

    def next_after(self, *, stream_id: str, valid_from: date) -> Optional[Timetable]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMETABLE_COLUMNS} FROM timetables
                WHERE stream_id=%s AND valid_from > %s
                ORDER BY valid_from ASC LIMIT 1
                """,
                (stream_id, valid_from),
            )
            r = fetchone(cur)
            return _row_to_timetable(r) if r else None

    def earliest_valid_from(self, stream_id: str) -> Optional[date]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT MIN(valid_from) AS first_day FROM timetables WHERE stream_id=%s", (stream_id,))
            r = fetchone(cur)
            return r["first_day"] if r and r.get("first_day") else None

    def set_end_date(self, *, timetable_id: int, valid_until: Optional[date]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE timetables SET valid_until=%s WHERE timetable_id=%s",
                (valid_until, int(timetable_id)),
            )
            return cur.rowcount > 0

    def list_for_stream(self, stream_id: str) -> Sequence[Timetable]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TIMETABLE_COLUMNS} FROM timetables WHERE stream_id=%s ORDER BY valid_from DESC",
                (stream_id,),
            )
            return self._attach_entries(cur, fetchall(cur))

    def list_for_range(self, *, stream_id: str, start: date, end: date) -> Sequence[Timetable]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TIMETABLE_COLUMNS} FROM timetables
                WHERE stream_id=%s
                  AND valid_from <= %s
                  AND (valid_until IS NULL OR valid_until >= %s)
                ORDER BY valid_from DESC
                """,
                (stream_id, end, start),
            )
            return self._attach_entries(cur, fetchall(cur))
