from __future__ import annotations

from datetime import date, datetime

import pytest

from src.stream_attendance.stream_attendance.core.enums import AttendanceStatus
from src.stream_attendance.stream_attendance.core.exceptions import ForbiddenError, ValidationError
from src.stream_attendance.stream_attendance.overrides.model import Replacement
from src.stream_attendance.stream_attendance.timetables.model import NewTimetableEntry
from tests.fakes import ADMIN, OTHER_STUDENT, OUTSIDER, STREAM, STUDENT, make_container

MONDAY = date(2024, 1, 1)
WEDNESDAY = date(2024, 1, 3)


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
            NewTimetableEntry(day_of_week=1, subject_name="Math", course_code="MA1", start_time="09:00", end_time="10:00"),
            NewTimetableEntry(day_of_week=1, subject_name="Physics", start_time="11:00", end_time="12:00"),
            NewTimetableEntry(day_of_week=3, subject_name="Math", course_code="MA1", start_time="09:00", end_time="10:00"),
        ],
    )
    return c


def _mark(c, subject, day, status="OCCURRED", index=0, user=STUDENT, **kwargs):
    return c.attendance_ledger.mark(
        user_id=user,
        stream_id=STREAM,
        subject_name=subject,
        class_date=day,
        subject_index=index,
        status=status,
        **kwargs,
    )


def test_remark_updates_the_single_record(container):
    first = _mark(container, "Math", MONDAY, "OCCURRED", now=datetime(2024, 1, 1, 10))
    second = _mark(container, "Math", MONDAY, "MISSED", now=datetime(2024, 1, 1, 11))

    records = list(container.attendance_repo.records.values())
    assert len(records) == 1
    assert second.record_id == first.record_id
    assert records[0].status == AttendanceStatus.MISSED
    assert records[0].marked_at == datetime(2024, 1, 1, 11)
    assert records[0].course_code == "MA1"


def test_mark_rejects_cancelled_and_replaced_slots(container):
    container.override_service.cancel_class(
        user_id=ADMIN, stream_id=STREAM, class_date=MONDAY, subject_name="Math", entry_index=0
    )
    container.override_service.replace_class(
        user_id=ADMIN,
        stream_id=STREAM,
        class_date=WEDNESDAY,
        subject_name="Math",
        entry_index=0,
        replacement=Replacement(subject_name="Chem"),
    )
    before = dict(container.attendance_repo.records)

    with pytest.raises(ValidationError, match="cancelled"):
        _mark(container, "Math", MONDAY)
    with pytest.raises(ValidationError, match="replaced"):
        _mark(container, "Math", WEDNESDAY)

    assert container.attendance_repo.records == before


@pytest.mark.parametrize(
    "subject, day, index, status",
    [
        ("Math", date(2024, 1, 2), 0, "OCCURRED"),
        ("Math", MONDAY, 1, "OCCURRED"),
        ("Math", MONDAY, 0, "CANCELLED"),
        ("Math", MONDAY, 0, "LATE"),
    ],
)
def test_mark_rejects_unknown_slots_and_statuses(container, subject, day, index, status):
    with pytest.raises(ValidationError):
        _mark(container, subject, day, status, index=index)
    assert container.attendance_repo.records == {}


def test_mark_on_replacement_slot_stores_original_subject(container):
    container.override_service.replace_class(
        user_id=ADMIN,
        stream_id=STREAM,
        class_date=MONDAY,
        subject_name="Math",
        entry_index=0,
        replacement=Replacement(subject_name="Physics"),
    )

    record = _mark(container, "Physics", MONDAY, index=1)

    assert record.is_replacement
    assert record.status == AttendanceStatus.OCCURRED
    assert record.original_subject_name == "Math"
    assert record.original_start_time == "09:00"


def test_mark_requires_membership(container):
    with pytest.raises(ForbiddenError):
        _mark(container, "Math", MONDAY, user=OUTSIDER)


def test_weekly_view_joins_marks_with_effective_slots(container):
    _mark(container, "Math", MONDAY, "OCCURRED")
    container.override_service.cancel_class(
        user_id=ADMIN, stream_id=STREAM, class_date=WEDNESDAY, subject_name="Math", entry_index=0
    )

    view = container.attendance_ledger.effective_weekly_view(user_id=STUDENT, stream_id=STREAM, start=MONDAY)

    assert [(e.slot.date, e.slot.subject_name, e.status) for e in view] == [
        (MONDAY, "Math", AttendanceStatus.OCCURRED),
        (MONDAY, "Physics", AttendanceStatus.MISSED),
        (WEDNESDAY, "Math", AttendanceStatus.CANCELLED),
    ]
    assert view[0].record_id is not None
    assert view[1].record_id is None


def test_weekly_view_with_only_end_covers_the_week_before_it(container):
    view = container.attendance_ledger.effective_weekly_view(
        user_id=STUDENT, stream_id=STREAM, end=WEDNESDAY, today=date(2024, 6, 1)
    )

    assert [(e.slot.date, e.slot.subject_name) for e in view] == [
        (MONDAY, "Math"),
        (MONDAY, "Physics"),
        (WEDNESDAY, "Math"),
    ]


def test_records_of_other_members_need_admin(container):
    _mark(container, "Math", MONDAY)
    ledger = container.attendance_ledger

    assert len(ledger.records(user_id=ADMIN, stream_id=STREAM, target_user_id=STUDENT, today=WEDNESDAY)) == 1
    assert len(ledger.records(user_id=STUDENT, stream_id=STREAM, today=WEDNESDAY)) == 1
    with pytest.raises(ForbiddenError):
        ledger.records(user_id=OTHER_STUDENT, stream_id=STREAM, target_user_id=STUDENT)


def test_record_bulk_checks_against_held_classes(container):
    container.override_service.cancel_class(
        user_id=ADMIN, stream_id=STREAM, class_date=MONDAY, subject_name="Physics", entry_index=0
    )
    ledger = container.attendance_ledger

    with pytest.raises(ValidationError):
        ledger.record_bulk(
            user_id=STUDENT, stream_id=STREAM, start_date=MONDAY, end_date=date(2024, 1, 14), attendance={"Physics": 2}
        )

    result = ledger.record_bulk(
        user_id=STUDENT,
        stream_id=STREAM,
        start_date=MONDAY,
        end_date=date(2024, 1, 14),
        attendance={"Math": 3, "Physics": 1, "Biology": 5},
    )

    assert [(e.subject_name, e.attended_classes, e.total_held_classes) for e in result.created] == [
        ("Math", 3, 4),
        ("Physics", 1, 1),
    ]
    assert result.created[0].course_code == "MA1"
    assert result.skipped_subjects == ("Biology",)
    entries = ledger.bulk_entries(user_id=STUDENT, stream_id=STREAM)
    assert [e.subject_name for e in entries] == ["Physics", "Math"]
    assert ledger.bulk_entries(user_id=OTHER_STUDENT, stream_id=STREAM) == []


def test_record_bulk_rejects_inverted_range(container):
    with pytest.raises(ValidationError):
        container.attendance_ledger.record_bulk(
            user_id=STUDENT, stream_id=STREAM, start_date=WEDNESDAY, end_date=MONDAY, attendance={"Math": 1}
        )
