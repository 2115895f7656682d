from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import StreamRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import StreamMembership
from .repository import StreamRepository


class MySQLStreamRepository(StreamRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def exists(self, stream_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM streams WHERE stream_id=%s", (stream_id,))
            return fetchone(cur) is not None

    def get_membership(self, *, stream_id: str, user_id: str) -> Optional[StreamMembership]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT stream_id, user_id, role, joined_at FROM stream_members WHERE stream_id=%s AND user_id=%s",
                (stream_id, user_id),
            )
            r = fetchone(cur)
            if not r:
                return None
            return StreamMembership(
                stream_id=str(r["stream_id"]),
                user_id=str(r["user_id"]),
                role=StreamRole(r["role"]),
                joined_at=r.get("joined_at"),
            )

    def member_user_ids(self, stream_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id FROM stream_members WHERE stream_id=%s ORDER BY joined_at ASC, user_id ASC",
                (stream_id,),
            )
            return [str(r["user_id"]) for r in fetchall(cur)]
