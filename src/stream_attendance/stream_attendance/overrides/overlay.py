"""Overlay of dated admin overrides on top of the expanded weekly schedule.

Both functions here work on the same de-duplicated override set (one per key), so the
slots the overlay produces and the counts analytics derive always agree:

    held = max(0, scheduled - cancelled) + replacements
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import iso_day_of_week
from ..core.enums import OverrideType
from ..schedule.expander import ScheduleEntry, display_order
from .model import (
    AddedOverride,
    ClassOverride,
    OverrideKey,
    ReplacedOverride,
    cancels_original,
    replacement_of,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveSlot:
    """One class instance after overrides: what students see and mark."""

    date: date
    day_of_week: int
    subject_name: str
    course_code: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]
    subject_index: int
    is_replacement: bool = False
    is_added: bool = False
    is_globally_cancelled: bool = False
    override_type: Optional[OverrideType] = None
    original_subject_name: Optional[str] = None
    original_start_time: Optional[str] = None
    original_end_time: Optional[str] = None
    source_key: Optional[OverrideKey] = None

    @property
    def stored_as_replacement(self) -> bool:
        """Value of AttendanceRecord.is_replacement for marks on this slot."""
        return self.is_replacement or self.is_added


@dataclass(frozen=True)
class OverrideCounts:
    cancelled: Counter
    replacements: Counter
    cancelled_keys: frozenset
    replacement_course_codes: dict


def _by_key(overrides: Iterable[ClassOverride]) -> dict[OverrideKey, ClassOverride]:
    # Storage is unique on the key; if a caller passes duplicates the last one wins.
    return {ov.key: ov for ov in overrides}


def classify_overrides(overrides: Iterable[ClassOverride], subject_name: Optional[str] = None) -> OverrideCounts:
    """cancelled[original]++ for CANCELLED/REPLACED, replacements[target]++ for REPLACED/ADDED."""
    cancelled: Counter = Counter()
    replacements: Counter = Counter()
    cancelled_keys: set[OverrideKey] = set()
    course_codes: dict[str, Optional[str]] = {}

    for key, ov in _by_key(overrides).items():
        if cancels_original(ov):
            cancelled_keys.add(key)
            if subject_name is None or key.original_subject_name == subject_name:
                cancelled[key.original_subject_name] += 1
        replacement = replacement_of(ov)
        if replacement is not None and (subject_name is None or replacement.subject_name == subject_name):
            replacements[replacement.subject_name] += 1
            course_codes.setdefault(replacement.subject_name, replacement.course_code)

    return OverrideCounts(
        cancelled=cancelled,
        replacements=replacements,
        cancelled_keys=frozenset(cancelled_keys),
        replacement_course_codes=course_codes,
    )


def _base_slot(entry: ScheduleEntry, override: Optional[ClassOverride]) -> EffectiveSlot:
    cancelled = override is not None and cancels_original(override)
    return EffectiveSlot(
        date=entry.date,
        day_of_week=entry.day_of_week,
        subject_name=entry.subject_name,
        course_code=entry.course_code,
        start_time=entry.start_time,
        end_time=entry.end_time,
        subject_index=entry.subject_index,
        is_globally_cancelled=cancelled,
        override_type=override.override_type if cancelled else None,
    )


def apply_overrides(base: Sequence[ScheduleEntry], overrides: Iterable[ClassOverride]) -> list[EffectiveSlot]:
    """Effective per-date slots: base slots (cancelled ones flagged), added slots, replacements.

    Added slots use the override's entry index. A replacement takes the first index above
    the replacement subject's highest base index that day that no added slot uses, so it
    never collides with a naturally scheduled occurrence.
    """

    by_key = _by_key(overrides)
    base_by_key: dict[OverrideKey, ScheduleEntry] = {}
    taken: dict[tuple[date, str], set[int]] = {}
    base_max: dict[tuple[date, str], int] = {}
    slots: list[EffectiveSlot] = []

    for entry in base:
        key = OverrideKey(entry.date, entry.subject_name, entry.subject_index)
        base_by_key[key] = entry
        slot = (entry.date, entry.subject_name)
        taken.setdefault(slot, set()).add(entry.subject_index)
        base_max[slot] = max(base_max.get(slot, -1), entry.subject_index)
        slots.append(_base_slot(entry, by_key.get(key)))

    for key, ov in by_key.items():
        if cancels_original(ov) and key not in base_by_key:
            logger.debug("Override %s %s matches no scheduled slot", ov.override_type.value, key)

    added = sorted((ov for ov in by_key.values() if isinstance(ov, AddedOverride)), key=lambda o: o.key)
    for ov in added:
        r = ov.replacement
        taken.setdefault((ov.class_date, r.subject_name), set()).add(ov.key.entry_index)
        slots.append(
            EffectiveSlot(
                date=ov.class_date,
                day_of_week=iso_day_of_week(ov.class_date),
                subject_name=r.subject_name,
                course_code=r.course_code,
                start_time=r.start_time,
                end_time=r.end_time,
                subject_index=ov.key.entry_index,
                is_added=True,
                override_type=OverrideType.ADDED,
                source_key=ov.key,
            )
        )

    replaced = sorted(
        (ov for ov in by_key.values() if isinstance(ov, ReplacedOverride)),
        key=lambda o: (o.created_at or datetime.min, o.key),
    )
    for ov in replaced:
        r = ov.replacement
        original = base_by_key.get(ov.key)
        if r.start_time or r.end_time or original is None:
            start_time, end_time = r.start_time, r.end_time
        else:
            start_time, end_time = original.start_time, original.end_time

        slot = (ov.class_date, r.subject_name)
        used = taken.setdefault(slot, set())
        index = base_max.get(slot, -1) + 1
        while index in used:
            index += 1
        used.add(index)

        slots.append(
            EffectiveSlot(
                date=ov.class_date,
                day_of_week=iso_day_of_week(ov.class_date),
                subject_name=r.subject_name,
                course_code=r.course_code,
                start_time=start_time,
                end_time=end_time,
                subject_index=index,
                is_replacement=True,
                override_type=OverrideType.REPLACED,
                original_subject_name=ov.key.original_subject_name,
                original_start_time=original.start_time if original else ov.original_start_time,
                original_end_time=original.end_time if original else None,
                source_key=ov.key,
            )
        )

    return sorted(slots, key=display_order)


def find_slot(
    slots: Iterable[EffectiveSlot], *, class_date: date, subject_name: str, subject_index: int
) -> Optional[EffectiveSlot]:
    """The markable slot for a key if one exists, else any (cancelled) slot with that key."""
    matches = [
        s
        for s in slots
        if s.date == class_date and s.subject_name == subject_name and s.subject_index == subject_index
    ]
    for s in matches:
        if not s.is_globally_cancelled:
            return s
    return matches[0] if matches else None
