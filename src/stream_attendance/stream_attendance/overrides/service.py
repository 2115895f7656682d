from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..attendance.model import NewAttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common import datetime_utils
from ..common.validators import (
    optional_text,
    optional_time,
    require_date_range,
    require_non_empty,
    require_non_negative_int,
)
from ..core.constants import EPOCH
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateRecordError, NotFoundError, ValidationError
from ..schedule.window import ScheduleWindow, ScheduleWindowLoader
from ..streams.service import StreamAccessService
from .model import (
    AddedOverride,
    CancelledOverride,
    ClassOverride,
    OverrideKey,
    ReplacedOverride,
    Replacement,
    replacement_of,
)
from .overlay import EffectiveSlot
from .repository import OverrideRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideChange:
    """Saved override plus how many members got a MISSED record for its new slot."""

    override: ClassOverride
    seeded_members: int = 0
    failed_members: int = 0


def _clean_replacement(replacement: Replacement) -> Replacement:
    start_time = optional_time(replacement.start_time, "start_time")
    end_time = optional_time(replacement.end_time, "end_time")
    if start_time and end_time and end_time < start_time:
        raise ValidationError("end_time cannot be before start_time")
    return Replacement(
        subject_name=require_non_empty(replacement.subject_name, "replacement subject_name"),
        course_code=optional_text(replacement.course_code),
        start_time=start_time,
        end_time=end_time,
    )


def _source_slots(window: ScheduleWindow) -> dict[OverrideKey, EffectiveSlot]:
    return {s.source_key: s for s in window.effective if s.source_key is not None}


class OverrideService:
    """Admin cancel / replace / add / revert of single class instances."""

    def __init__(
        self,
        overrides: OverrideRepository,
        records: AttendanceRepository,
        access: StreamAccessService,
        windows: ScheduleWindowLoader,
    ):
        self._overrides = overrides
        self._records = records
        self._access = access
        self._windows = windows

    def _key(self, class_date: date, subject_name: str, entry_index: int) -> OverrideKey:
        return OverrideKey(
            class_date=class_date,
            original_subject_name=require_non_empty(subject_name, "subject_name"),
            entry_index=require_non_negative_int(entry_index, "entry_index"),
        )

    def _scheduled_entry(self, window: ScheduleWindow, key: OverrideKey):
        for entry in window.base:
            if (entry.date, entry.subject_name, entry.subject_index) == (
                key.class_date,
                key.original_subject_name,
                key.entry_index,
            ):
                return entry
        raise ValidationError(
            f"No {key.original_subject_name} class (index {key.entry_index}) is scheduled on "
            f"{datetime_utils.format_day(key.class_date)}."
        )

    def _save(self, stream_id: str, override: ClassOverride) -> tuple[ClassOverride, ScheduleWindow]:
        """Upsert and keep stored replacement-slot marks aligned with the new effective schedule."""
        day = override.class_date
        before = self._windows.load(stream_id, day, day)
        previous = _source_slots(before).get(override.key)

        saved = self._overrides.upsert(override)
        after = self._windows.load(stream_id, day, day)
        current = _source_slots(after).get(override.key)
        # Same subject keeps its marks (moved by _realign if the index shifted).
        if previous is not None and (current is None or current.subject_name != previous.subject_name):
            removed = self._records.delete_slot_records(
                stream_id=stream_id,
                class_date=day,
                subject_name=previous.subject_name,
                subject_index=previous.subject_index,
            )
            logger.info("Dropped %s records of superseded %s slot on %s", removed, previous.subject_name, day)
        self._realign(stream_id, before, after)
        return saved, after

    def _realign(self, stream_id: str, before: ScheduleWindow, after: ScheduleWindow) -> None:
        old = _source_slots(before)
        moves = []
        for key, slot in _source_slots(after).items():
            prev = old.get(key)
            if prev is None or prev.subject_name != slot.subject_name:
                continue
            if prev.subject_index != slot.subject_index:
                moves.append((slot.date, slot.subject_name, prev.subject_index, slot.subject_index))

        # Downward moves first (lowest first), then upward moves (highest first), so a move
        # never lands on an index another slot still occupies.
        down = sorted((m for m in moves if m[3] < m[2]), key=lambda m: m[2])
        up = sorted((m for m in moves if m[3] > m[2]), key=lambda m: m[2], reverse=True)
        for class_date, subject_name, from_index, to_index in down + up:
            self._records.move_slot_records(
                stream_id=stream_id,
                class_date=class_date,
                subject_name=subject_name,
                from_index=from_index,
                to_index=to_index,
            )
            logger.debug("Moved %s replacement records on %s from index %s to %s", subject_name, class_date, from_index, to_index)

    def _preseed(self, stream_id: str, slot: EffectiveSlot) -> tuple[int, int]:
        seeded = failed = 0
        now = datetime_utils.now_local()
        for member_id in self._access.member_user_ids(stream_id):
            record = NewAttendanceRecord(
                user_id=member_id,
                stream_id=stream_id,
                subject_name=slot.subject_name,
                class_date=slot.date,
                subject_index=slot.subject_index,
                is_replacement=True,
                status=AttendanceStatus.MISSED,
                marked_at=now,
                course_code=slot.course_code,
                original_subject_name=slot.original_subject_name,
                original_start_time=slot.original_start_time,
                original_end_time=slot.original_end_time,
            )
            try:
                self._records.insert(record)
            except DuplicateRecordError:
                pass
            except Exception:
                failed += 1
                logger.warning(
                    "Could not pre-seed %s on %s for member %s in stream %s",
                    slot.subject_name,
                    slot.date,
                    member_id,
                    stream_id,
                    exc_info=True,
                )
                continue
            seeded += 1
        return seeded, failed

    def _save_with_slot(self, stream_id: str, override: ClassOverride) -> OverrideChange:
        saved, after = self._save(stream_id, override)
        slot = _source_slots(after).get(saved.key)
        if slot is None:
            raise RuntimeError(f"Override {saved.key} produced no class slot")
        seeded, failed = self._preseed(stream_id, slot)
        logger.info(
            "%s override on %s for %s saved in stream %s; pre-seeded %s members (%s failed)",
            saved.override_type.value,
            saved.class_date,
            saved.key.original_subject_name,
            stream_id,
            seeded,
            failed,
        )
        return OverrideChange(override=saved, seeded_members=seeded, failed_members=failed)

    def cancel_class(
        self,
        *,
        user_id: str,
        stream_id: str,
        class_date: date,
        subject_name: str,
        entry_index: int,
    ) -> OverrideChange:
        self._access.ensure_admin(stream_id, user_id)
        key = self._key(class_date, subject_name, entry_index)
        entry = self._scheduled_entry(self._windows.load(stream_id, class_date, class_date), key)

        saved, _ = self._save(
            stream_id,
            CancelledOverride(
                stream_id=stream_id,
                key=key,
                admin_user_id=user_id,
                original_start_time=entry.start_time,
            ),
        )
        logger.info("CANCELLED override on %s for %s saved in stream %s", class_date, key.original_subject_name, stream_id)
        return OverrideChange(override=saved)

    def replace_class(
        self,
        *,
        user_id: str,
        stream_id: str,
        class_date: date,
        subject_name: str,
        entry_index: int,
        replacement: Replacement,
    ) -> OverrideChange:
        self._access.ensure_admin(stream_id, user_id)
        key = self._key(class_date, subject_name, entry_index)
        replacement = _clean_replacement(replacement)
        entry = self._scheduled_entry(self._windows.load(stream_id, class_date, class_date), key)

        return self._save_with_slot(
            stream_id,
            ReplacedOverride(
                stream_id=stream_id,
                key=key,
                admin_user_id=user_id,
                original_start_time=entry.start_time,
                replacement=replacement,
            ),
        )

    def add_class(
        self,
        *,
        user_id: str,
        stream_id: str,
        class_date: date,
        replacement: Replacement,
        entry_index: Optional[int] = None,
    ) -> OverrideChange:
        """Extra session for a subject that has no regular class that day."""

        self._access.ensure_admin(stream_id, user_id)
        replacement = _clean_replacement(replacement)
        window = self._windows.load(stream_id, class_date, class_date)

        subject = replacement.subject_name
        if any(e.subject_name == subject for e in window.base):
            raise ValidationError(
                f"{subject} is already scheduled on {datetime_utils.format_day(class_date)}; "
                "replace or cancel that class instead."
            )
        key = None if entry_index is None else self._key(class_date, subject, entry_index)
        # Re-sending an existing added class upserts it in place.
        used = {s.subject_index for s in window.effective if s.subject_name == subject and s.source_key != key}
        if entry_index is None:
            entry_index = 0
            while entry_index in used:
                entry_index += 1
        elif require_non_negative_int(entry_index, "entry_index") in used:
            raise ValidationError(f"{subject} already has a class with index {entry_index} on that day.")

        return self._save_with_slot(
            stream_id,
            AddedOverride(
                stream_id=stream_id,
                key=OverrideKey(class_date=class_date, original_subject_name=subject, entry_index=entry_index),
                admin_user_id=user_id,
                original_start_time=replacement.start_time,
                replacement=replacement,
            ),
        )

    def revert_override(
        self,
        *,
        user_id: str,
        stream_id: str,
        class_date: date,
        subject_name: str,
        entry_index: int,
    ) -> ClassOverride:
        """Remove an override. Marks on a replacement or added slot go with it."""

        self._access.ensure_admin(stream_id, user_id)
        key = self._key(class_date, subject_name, entry_index)
        existing = self._overrides.get(stream_id=stream_id, key=key)
        if existing is None:
            raise NotFoundError("No override exists for this class")

        before = self._windows.load(stream_id, class_date, class_date)
        slot = _source_slots(before).get(key)
        if replacement_of(existing) is not None and slot is not None:
            removed = self._records.delete_slot_records(
                stream_id=stream_id,
                class_date=class_date,
                subject_name=slot.subject_name,
                subject_index=slot.subject_index,
            )
            logger.info("Reverted %s override on %s; removed %s member records", existing.override_type.value, class_date, removed)

        self._overrides.delete(stream_id=stream_id, key=key)
        after = self._windows.load(stream_id, class_date, class_date)
        self._realign(stream_id, before, after)
        return existing

    def list_overrides(
        self,
        *,
        user_id: str,
        stream_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[ClassOverride]:
        self._access.ensure_member(stream_id, user_id)
        start = start or EPOCH
        end = end or date.max
        require_date_range(start, end)
        return self._overrides.list_for_range(stream_id=stream_id, start=start, end=end)
