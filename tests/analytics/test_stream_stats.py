from __future__ import annotations

from datetime import date

import pytest

from src.stream_attendance.stream_attendance.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from src.stream_attendance.stream_attendance.overrides.model import Replacement
from src.stream_attendance.stream_attendance.timetables.model import NewTimetableEntry
from tests.fakes import ADMIN, OTHER_STUDENT, OUTSIDER, STREAM, STUDENT, make_container

MONDAY = date(2024, 1, 1)
WEDNESDAY = date(2024, 1, 3)
NEXT_MONDAY = date(2024, 1, 8)
NEXT_WEDNESDAY = date(2024, 1, 10)


@pytest.fixture()
def container():
    c = make_container()
    c.timetable_service.create_timetable(
        user_id=ADMIN,
        stream_id=STREAM,
        name="Term 1",
        valid_from=MONDAY,
        valid_until=None,
        entries=[
            NewTimetableEntry(day_of_week=1, subject_name="Math", course_code="MA1", start_time="09:00"),
            NewTimetableEntry(day_of_week=3, subject_name="Math", course_code="MA1", start_time="09:00"),
        ],
    )
    return c


def _mark(c, day, status="OCCURRED", subject="Math", index=0):
    c.attendance_ledger.mark(
        user_id=STUDENT, stream_id=STREAM, subject_name=subject, class_date=day, subject_index=index, status=status
    )


def test_marks_on_cancelled_slots_are_superseded(container):
    _mark(container, MONDAY)
    _mark(container, WEDNESDAY)
    _mark(container, NEXT_MONDAY, "MISSED")
    container.override_service.cancel_class(
        user_id=ADMIN, stream_id=STREAM, class_date=WEDNESDAY, subject_name="Math", entry_index=0
    )

    stats = container.analytics_service.stream_stats(user_id=STUDENT, stream_id=STREAM, end=NEXT_WEDNESDAY)

    assert stats.start == MONDAY
    (math,) = stats.subjects
    assert (math.scheduled, math.cancelled, math.replacements, math.held, math.attended) == (4, 1, 0, 3, 1)
    assert math.course_code == "MA1"
    assert math.percentage == 33.33
    assert (stats.total_held, stats.total_attended, stats.overall_percentage) == (3, 1, 33.33)


def test_replacement_subject_gets_its_own_row(container):
    _mark(container, MONDAY)
    container.override_service.replace_class(
        user_id=ADMIN,
        stream_id=STREAM,
        class_date=WEDNESDAY,
        subject_name="Math",
        entry_index=0,
        replacement=Replacement(subject_name="Chem", course_code="CH1"),
    )
    _mark(container, WEDNESDAY, subject="Chem")

    stats = container.analytics_service.stream_stats(
        user_id=STUDENT, stream_id=STREAM, start=MONDAY, end=date(2024, 1, 7)
    )

    rows = {r.subject_name: r for r in stats.subjects}
    assert [r.subject_name for r in stats.subjects] == ["Chem", "Math"]
    assert (rows["Math"].held, rows["Math"].attended, rows["Math"].percentage) == (1, 1, 100.0)
    assert (rows["Chem"].held, rows["Chem"].attended, rows["Chem"].course_code) == (1, 1, "CH1")
    assert stats.overall_percentage == 100.0


def test_percentage_is_none_without_held_classes(container):
    stats = container.analytics_service.stream_stats(
        user_id=STUDENT, stream_id=STREAM, start=date(2023, 12, 1), end=date(2023, 12, 31)
    )

    assert stats.subjects == ()
    assert stats.overall_percentage is None


def test_term_not_started_yet_returns_empty_stats():
    c = make_container()
    c.timetable_service.create_timetable(
        user_id=ADMIN,
        stream_id=STREAM,
        name="Autumn",
        valid_from=date(2024, 9, 2),
        valid_until=None,
        entries=[NewTimetableEntry(day_of_week=1, subject_name="Math", start_time="09:00")],
    )

    stats = c.analytics_service.stream_stats(user_id=STUDENT, stream_id=STREAM, today=date(2024, 8, 1))

    assert stats.subjects == ()
    assert (stats.total_held, stats.total_attended) == (0, 0)
    assert stats.overall_percentage is None


def test_explicit_inverted_range_is_rejected(container):
    with pytest.raises(ValidationError):
        container.analytics_service.stream_stats(
            user_id=STUDENT, stream_id=STREAM, start=NEXT_MONDAY, end=MONDAY
        )


def test_one_third_rounds_half_up(container):
    for day in (MONDAY, WEDNESDAY):
        _mark(container, day, "MISSED")
    _mark(container, NEXT_MONDAY)

    stats = container.analytics_service.stream_stats(
        user_id=STUDENT, stream_id=STREAM, start=MONDAY, end=NEXT_MONDAY
    )

    assert stats.subjects[0].percentage == 33.33


def test_stats_for_another_member_need_admin(container):
    stats = container.analytics_service.stream_stats(
        user_id=ADMIN, stream_id=STREAM, target_user_id=STUDENT, end=NEXT_WEDNESDAY
    )
    assert stats.user_id == STUDENT

    with pytest.raises(ForbiddenError):
        container.analytics_service.stream_stats(user_id=OTHER_STUDENT, stream_id=STREAM, target_user_id=STUDENT)
    with pytest.raises(ForbiddenError):
        container.analytics_service.stream_stats(user_id=OUTSIDER, stream_id=STREAM)
    with pytest.raises(NotFoundError):
        container.analytics_service.stream_stats(user_id=STUDENT, stream_id="missing")


def test_window_is_fetched_once_per_call(container):
    timetables, overrides = container.timetables_repo, container.overrides_repo
    t0, o0 = timetables.range_calls, overrides.range_calls

    container.analytics_service.stream_stats(user_id=STUDENT, stream_id=STREAM, start=MONDAY, end=date(2024, 12, 31))

    assert (timetables.range_calls - t0, overrides.range_calls - o0) == (1, 1)
