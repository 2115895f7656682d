from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import format_day
from ..common.validators import (
    optional_text,
    optional_time,
    require_day_of_week,
    require_non_empty,
)
from ..core.exceptions import NotFoundError, ValidationError
from ..streams.service import StreamAccessService
from .model import NewTimetableEntry, Timetable
from .repository import TimetableRepository
from .resolver import TimetableResolver


def _clean_entry(entry: NewTimetableEntry) -> NewTimetableEntry:
    start_time = optional_time(entry.start_time, "start_time")
    end_time = optional_time(entry.end_time, "end_time")
    if start_time and end_time and end_time < start_time:
        raise ValidationError("end_time cannot be before start_time")
    return NewTimetableEntry(
        day_of_week=require_day_of_week(entry.day_of_week),
        subject_name=require_non_empty(entry.subject_name, "subject_name"),
        course_code=optional_text(entry.course_code),
        start_time=start_time,
        end_time=end_time,
    )


class TimetableService:
    """Versioned weekly timetables: versions never overlap and are only added forward."""

    def __init__(self, timetables: TimetableRepository, access: StreamAccessService, resolver: TimetableResolver):
        self._timetables = timetables
        self._access = access
        self._resolver = resolver

    def create_timetable(
        self,
        *,
        user_id: str,
        stream_id: str,
        name: str,
        valid_from: date,
        valid_until: Optional[date],
        entries: Sequence[NewTimetableEntry],
    ) -> Timetable:
        self._access.ensure_admin(stream_id, user_id)

        name = require_non_empty(name, "name")
        if valid_until is not None and valid_until < valid_from:
            raise ValidationError("End date cannot be before start date.")
        cleaned = [_clean_entry(e) for e in entries]
        if not cleaned:
            raise ValidationError("Timetable must have at least one schedule entry.")

        latest = self._timetables.latest_for_stream(stream_id)
        if latest is not None:
            if valid_from <= latest.valid_from:
                raise ValidationError(
                    "The new timetable's start date must be after the start date of the most recent "
                    f"timetable ({format_day(latest.valid_from)})."
                )
            if latest.valid_until is None:
                self._timetables.set_end_date(
                    timetable_id=latest.timetable_id, valid_until=valid_from - timedelta(days=1)
                )
            elif latest.valid_until >= valid_from:
                raise ValidationError(
                    f"The most recent timetable is valid until {format_day(latest.valid_until)}; "
                    "the new timetable must start after that."
                )

        return self._timetables.create(
            stream_id=stream_id,
            name=name,
            valid_from=valid_from,
            valid_until=valid_until,
            entries=cleaned,
        )

    def set_timetable_end_date(self, *, user_id: str, timetable_id: int, valid_until: date) -> Timetable:
        timetable = self._timetables.get_by_id(timetable_id)
        if timetable is None:
            raise NotFoundError("Timetable not found.")
        self._access.ensure_admin(timetable.stream_id, user_id)

        if valid_until < timetable.valid_from:
            raise ValidationError("End date cannot be earlier than the timetable's start date.")
        following = self._timetables.next_after(stream_id=timetable.stream_id, valid_from=timetable.valid_from)
        if following is not None and valid_until >= following.valid_from:
            raise ValidationError(
                f"End date must be before the next timetable starts ({format_day(following.valid_from)})."
            )

        self._timetables.set_end_date(timetable_id=timetable.timetable_id, valid_until=valid_until)
        updated = self._timetables.get_by_id(timetable.timetable_id)
        if updated is None:
            raise NotFoundError("Timetable not found.")
        return updated

    def list_timetables(self, *, user_id: str, stream_id: str) -> Sequence[Timetable]:
        self._access.ensure_member(stream_id, user_id)
        return self._timetables.list_for_stream(stream_id)

    def timetable_details(self, *, user_id: str, timetable_id: int) -> Timetable:
        timetable = self._timetables.get_by_id(timetable_id)
        if timetable is None:
            raise NotFoundError("Timetable not found")
        self._access.ensure_member(timetable.stream_id, user_id)
        return timetable

    def active_timetable(self, *, user_id: str, stream_id: str, day: date) -> Optional[Timetable]:
        """The version active on `day`, or None when no timetable covers it."""
        self._access.ensure_member(stream_id, user_id)
        return self._resolver.active_on(stream_id, day)
