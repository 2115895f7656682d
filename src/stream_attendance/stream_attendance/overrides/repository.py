from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ClassOverride, OverrideKey


class OverrideRepository(Protocol):
    def upsert(self, override: ClassOverride) -> ClassOverride:
        """Insert or replace the override stored under (stream_id, key).

        created_at of an existing row is kept.
        """

        raise NotImplementedError

    def get(self, *, stream_id: str, key: OverrideKey) -> Optional[ClassOverride]:
        raise NotImplementedError

    def delete(self, *, stream_id: str, key: OverrideKey) -> bool:
        raise NotImplementedError

    def list_for_range(self, *, stream_id: str, start: date, end: date) -> Sequence[ClassOverride]:
        """Every override with start <= class_date <= end, in one round trip."""

        raise NotImplementedError
