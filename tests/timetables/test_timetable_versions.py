from __future__ import annotations

from datetime import date

import pytest

from src.stream_attendance.stream_attendance.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from src.stream_attendance.stream_attendance.timetables.model import NewTimetableEntry, Timetable
from src.stream_attendance.stream_attendance.timetables.resolver import select_active
from tests.fakes import ADMIN, OUTSIDER, STREAM, STUDENT, make_container

MATH_MONDAY = NewTimetableEntry(day_of_week=1, subject_name="Math", start_time="09:00", end_time="10:00")


def _tt(timetable_id: int, valid_from: date, valid_until=None) -> Timetable:
    return Timetable(
        timetable_id=timetable_id,
        stream_id=STREAM,
        name=f"v{timetable_id}",
        valid_from=valid_from,
        valid_until=valid_until,
    )


def test_select_active_picks_latest_started_version():
    old = _tt(1, date(2024, 1, 1), date(2024, 1, 31))
    new = _tt(2, date(2024, 2, 1))

    assert select_active([new, old], date(2024, 1, 15)) == old
    assert select_active([old, new], date(2024, 2, 1)) == new
    assert select_active([old, new], date(2023, 12, 31)) is None


def test_select_active_returns_none_after_latest_version_closed():
    closed = _tt(1, date(2024, 1, 1), date(2024, 1, 10))

    assert select_active([closed], date(2024, 1, 10)) == closed
    assert select_active([closed], date(2024, 1, 11)) is None


def test_new_version_closes_open_ended_predecessor():
    c = make_container()
    svc = c.timetable_service
    first = svc.create_timetable(
        user_id=ADMIN, stream_id=STREAM, name="Term 1", valid_from=date(2024, 1, 1), valid_until=None, entries=[MATH_MONDAY]
    )
    svc.create_timetable(
        user_id=ADMIN, stream_id=STREAM, name="Term 2", valid_from=date(2024, 3, 1), valid_until=None, entries=[MATH_MONDAY]
    )

    assert c.timetables_repo.get_by_id(first.timetable_id).valid_until == date(2024, 2, 29)
    active = svc.active_timetable(user_id=STUDENT, stream_id=STREAM, day=date(2024, 2, 29))
    assert active.name == "Term 1"
    assert svc.active_timetable(user_id=STUDENT, stream_id=STREAM, day=date(2024, 3, 1)).name == "Term 2"
    assert [t.name for t in svc.list_timetables(user_id=STUDENT, stream_id=STREAM)] == ["Term 2", "Term 1"]


def test_new_version_must_start_after_latest():
    c = make_container()
    svc = c.timetable_service
    svc.create_timetable(
        user_id=ADMIN, stream_id=STREAM, name="Term 1", valid_from=date(2024, 1, 1), valid_until=None, entries=[MATH_MONDAY]
    )

    with pytest.raises(ValidationError):
        svc.create_timetable(
            user_id=ADMIN, stream_id=STREAM, name="Again", valid_from=date(2024, 1, 1), valid_until=None, entries=[MATH_MONDAY]
        )


def test_new_version_may_not_overlap_bounded_predecessor():
    c = make_container()
    svc = c.timetable_service
    svc.create_timetable(
        user_id=ADMIN,
        stream_id=STREAM,
        name="Term 1",
        valid_from=date(2024, 1, 1),
        valid_until=date(2024, 1, 31),
        entries=[MATH_MONDAY],
    )

    with pytest.raises(ValidationError):
        svc.create_timetable(
            user_id=ADMIN, stream_id=STREAM, name="Term 2", valid_from=date(2024, 1, 15), valid_until=None, entries=[MATH_MONDAY]
        )


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(entries=[]),
        dict(valid_until=date(2023, 12, 1)),
        dict(entries=[NewTimetableEntry(day_of_week=8, subject_name="Math")]),
        dict(entries=[NewTimetableEntry(day_of_week=1, subject_name="Math", start_time="9am")]),
        dict(name="  "),
    ],
)
def test_create_rejects_invalid_input(kwargs):
    c = make_container()
    args = dict(
        user_id=ADMIN,
        stream_id=STREAM,
        name="Term 1",
        valid_from=date(2024, 1, 1),
        valid_until=None,
        entries=[MATH_MONDAY],
    )
    args.update(kwargs)

    with pytest.raises(ValidationError):
        c.timetable_service.create_timetable(**args)


def test_only_admins_create_timetables():
    c = make_container()
    with pytest.raises(ForbiddenError):
        c.timetable_service.create_timetable(
            user_id=STUDENT, stream_id=STREAM, name="T", valid_from=date(2024, 1, 1), valid_until=None, entries=[MATH_MONDAY]
        )
    with pytest.raises(NotFoundError):
        c.timetable_service.list_timetables(user_id=ADMIN, stream_id="missing")
    with pytest.raises(ForbiddenError):
        c.timetable_service.list_timetables(user_id=OUTSIDER, stream_id=STREAM)


def test_set_end_date_respects_neighbours():
    c = make_container()
    svc = c.timetable_service
    first = svc.create_timetable(
        user_id=ADMIN, stream_id=STREAM, name="Term 1", valid_from=date(2024, 1, 1), valid_until=None, entries=[MATH_MONDAY]
    )
    svc.create_timetable(
        user_id=ADMIN, stream_id=STREAM, name="Term 2", valid_from=date(2024, 3, 1), valid_until=None, entries=[MATH_MONDAY]
    )

    with pytest.raises(ValidationError):
        svc.set_timetable_end_date(user_id=ADMIN, timetable_id=first.timetable_id, valid_until=date(2024, 3, 1))
    with pytest.raises(ValidationError):
        svc.set_timetable_end_date(user_id=ADMIN, timetable_id=first.timetable_id, valid_until=date(2023, 12, 31))

    updated = svc.set_timetable_end_date(user_id=ADMIN, timetable_id=first.timetable_id, valid_until=date(2024, 2, 1))
    assert updated.valid_until == date(2024, 2, 1)
    assert svc.active_timetable(user_id=STUDENT, stream_id=STREAM, day=date(2024, 2, 15)) is None


def test_timetable_details_requires_existing_timetable():
    c = make_container()
    with pytest.raises(NotFoundError):
        c.timetable_service.timetable_details(user_id=ADMIN, timetable_id=42)
