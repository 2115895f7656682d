from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import StreamRole


@dataclass(frozen=True)
class StreamMembership:
    """A user's membership in a stream. Managed outside this package; read-only here."""

    stream_id: str
    user_id: str
    role: StreamRole
    joined_at: Optional[datetime] = None
