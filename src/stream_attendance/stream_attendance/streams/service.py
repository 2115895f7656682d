from __future__ import annotations

from typing import Sequence

from ..core.enums import StreamRole
from ..core.exceptions import ForbiddenError, NotFoundError
from .repository import StreamRepository


class StreamAccessService:
    """Membership checks run before every timetable, overlay and analytics call."""

    def __init__(self, streams: StreamRepository):
        self._streams = streams

    def _role(self, stream_id: str, user_id: str):
        if not self._streams.exists(stream_id):
            raise NotFoundError("Stream not found")
        membership = self._streams.get_membership(stream_id=stream_id, user_id=user_id)
        return membership.role if membership else None

    def ensure_member(self, stream_id: str, user_id: str) -> StreamRole:
        role = self._role(stream_id, user_id)
        if role is None:
            raise ForbiddenError("You must be a member of this stream to perform this action.")
        return role

    def ensure_admin(self, stream_id: str, user_id: str) -> None:
        if self._role(stream_id, user_id) != StreamRole.ADMIN:
            raise ForbiddenError("You must be an admin of this stream to perform this action.")

    def member_user_ids(self, stream_id: str) -> Sequence[str]:
        return self._streams.member_user_ids(stream_id)
