from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import OverrideType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_hhmm
from .model import (
    AddedOverride,
    CancelledOverride,
    ClassOverride,
    OverrideKey,
    ReplacedOverride,
    Replacement,
    replacement_of,
)
from .repository import OverrideRepository

_COLUMNS = """
    override_id, stream_id, class_date, original_subject_name, entry_index, original_start_time,
    override_type, replacement_subject_name, replacement_course_code, replacement_start_time,
    replacement_end_time, admin_user_id, created_at
"""


def _row_to_override(r: dict) -> ClassOverride:
    """Storage row -> tagged union. Replacement columns are only read for REPLACED/ADDED."""
    common = dict(
        override_id=int(r["override_id"]),
        stream_id=str(r["stream_id"]),
        key=OverrideKey(
            class_date=r["class_date"],
            original_subject_name=r["original_subject_name"],
            entry_index=int(r["entry_index"]),
        ),
        admin_user_id=str(r["admin_user_id"]),
        original_start_time=normalize_hhmm(r.get("original_start_time")),
        created_at=r.get("created_at"),
    )
    override_type = OverrideType(r["override_type"])
    if override_type == OverrideType.CANCELLED:
        return CancelledOverride(**common)

    if not r.get("replacement_subject_name"):
        raise ValueError(f"Override {r['override_id']} ({override_type.value}) has no replacement subject")
    replacement = Replacement(
        subject_name=r["replacement_subject_name"],
        course_code=r.get("replacement_course_code") or None,
        start_time=normalize_hhmm(r.get("replacement_start_time")),
        end_time=normalize_hhmm(r.get("replacement_end_time")),
    )
    if override_type == OverrideType.REPLACED:
        return ReplacedOverride(replacement=replacement, **common)
    return AddedOverride(replacement=replacement, **common)


class MySQLOverrideRepository(OverrideRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, override: ClassOverride) -> ClassOverride:
        replacement = replacement_of(override)
        key = override.key
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_overrides(
                    stream_id, class_date, original_subject_name, entry_index, original_start_time,
                    override_type, replacement_subject_name, replacement_course_code,
                    replacement_start_time, replacement_end_time, admin_user_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    original_start_time=VALUES(original_start_time),
                    override_type=VALUES(override_type),
                    replacement_subject_name=VALUES(replacement_subject_name),
                    replacement_course_code=VALUES(replacement_course_code),
                    replacement_start_time=VALUES(replacement_start_time),
                    replacement_end_time=VALUES(replacement_end_time),
                    admin_user_id=VALUES(admin_user_id)
                """,
                (
                    override.stream_id,
                    key.class_date,
                    key.original_subject_name,
                    int(key.entry_index),
                    override.original_start_time,
                    override.override_type.value,
                    replacement.subject_name if replacement else None,
                    replacement.course_code if replacement else None,
                    replacement.start_time if replacement else None,
                    replacement.end_time if replacement else None,
                    override.admin_user_id,
                ),
            )
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM class_overrides
                WHERE stream_id=%s AND class_date=%s AND original_subject_name=%s AND entry_index=%s
                """,
                (override.stream_id, key.class_date, key.original_subject_name, int(key.entry_index)),
            )
            return _row_to_override(fetchone(cur))

    def get(self, *, stream_id: str, key: OverrideKey) -> Optional[ClassOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM class_overrides
                WHERE stream_id=%s AND class_date=%s AND original_subject_name=%s AND entry_index=%s
                """,
                (stream_id, key.class_date, key.original_subject_name, int(key.entry_index)),
            )
            r = fetchone(cur)
            return _row_to_override(r) if r else None

    def delete(self, *, stream_id: str, key: OverrideKey) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM class_overrides
                WHERE stream_id=%s AND class_date=%s AND original_subject_name=%s AND entry_index=%s
                """,
                (stream_id, key.class_date, key.original_subject_name, int(key.entry_index)),
            )
            return cur.rowcount > 0

    def list_for_range(self, *, stream_id: str, start: date, end: date) -> Sequence[ClassOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM class_overrides
                WHERE stream_id=%s AND class_date BETWEEN %s AND %s
                ORDER BY class_date ASC, original_subject_name ASC, entry_index ASC
                """,
                (stream_id, start, end),
            )
            return [_row_to_override(r) for r in fetchall(cur)]
