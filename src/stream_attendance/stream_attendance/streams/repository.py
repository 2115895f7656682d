from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import StreamMembership


class StreamRepository(Protocol):
    """Read side of stream membership, owned by the stream-management collaborator."""

    def exists(self, stream_id: str) -> bool:
        raise NotImplementedError

    def get_membership(self, *, stream_id: str, user_id: str) -> Optional[StreamMembership]:
        """None when the user is not a member."""

        raise NotImplementedError

    def member_user_ids(self, stream_id: str) -> Sequence[str]:
        raise NotImplementedError
