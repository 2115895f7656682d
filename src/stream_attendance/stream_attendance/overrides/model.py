from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar, Optional, Union

from ..core.enums import OverrideType


@dataclass(frozen=True, order=True)
class OverrideKey:
    """Slot an override applies to: (date, subject, entry index). Unique per stream."""

    class_date: date
    original_subject_name: str
    entry_index: int


@dataclass(frozen=True)
class Replacement:
    """Class held instead of (REPLACED) or in addition to (ADDED) the timetable."""

    subject_name: str
    course_code: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class _OverrideBase:
    stream_id: str
    key: OverrideKey
    admin_user_id: str
    original_start_time: Optional[str] = None
    override_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def class_date(self) -> date:
        return self.key.class_date


@dataclass(frozen=True, kw_only=True)
class CancelledOverride(_OverrideBase):
    override_type: ClassVar[OverrideType] = OverrideType.CANCELLED


@dataclass(frozen=True, kw_only=True)
class ReplacedOverride(_OverrideBase):
    replacement: Replacement
    override_type: ClassVar[OverrideType] = OverrideType.REPLACED


@dataclass(frozen=True, kw_only=True)
class AddedOverride(_OverrideBase):
    """An extra session. key.original_subject_name equals replacement.subject_name."""

    replacement: Replacement
    override_type: ClassVar[OverrideType] = OverrideType.ADDED


ClassOverride = Union[CancelledOverride, ReplacedOverride, AddedOverride]


def cancels_original(override: ClassOverride) -> bool:
    return isinstance(override, (CancelledOverride, ReplacedOverride))


def replacement_of(override: ClassOverride) -> Optional[Replacement]:
    if isinstance(override, (ReplacedOverride, AddedOverride)):
        return override.replacement
    if isinstance(override, CancelledOverride):
        return None
    raise TypeError(f"Unknown override: {override!r}")
