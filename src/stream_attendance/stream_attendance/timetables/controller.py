from __future__ import annotations

from flask import Flask, request

from ..common import datetime_utils
from ..common.http import current_user_id, json_body, parse_date, parse_int, success
from ..container import Container
from ..core.exceptions import ValidationError
from .model import NewTimetableEntry


def _entries_from_body(raw) -> list[NewTimetableEntry]:
    if not isinstance(raw, list):
        raise ValidationError("entries must be a list")
    entries = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("each entry must be an object")
        entries.append(
            NewTimetableEntry(
                day_of_week=parse_int(item.get("day_of_week"), "day_of_week", required=True),
                subject_name=str(item.get("subject_name") or ""),
                course_code=item.get("course_code"),
                start_time=item.get("start_time"),
                end_time=item.get("end_time"),
            )
        )
    return entries


def register(app: Flask, container: Container) -> None:
    @app.route("/api/streams/<stream_id>/timetables", methods=["POST"], endpoint="create_timetable")
    def create_timetable(stream_id: str):
        user_id = current_user_id()
        data = json_body()
        timetable = container.timetable_service.create_timetable(
            user_id=user_id,
            stream_id=stream_id,
            name=str(data.get("name") or ""),
            valid_from=parse_date(data.get("valid_from"), "valid_from", required=True),
            valid_until=parse_date(data.get("valid_until"), "valid_until"),
            entries=_entries_from_body(data.get("entries")),
        )
        return success(timetable, 201)

    @app.route("/api/streams/<stream_id>/timetables", methods=["GET"], endpoint="list_timetables")
    def list_timetables(stream_id: str):
        timetables = container.timetable_service.list_timetables(user_id=current_user_id(), stream_id=stream_id)
        return success(timetables)

    @app.route("/api/streams/<stream_id>/timetables/active", methods=["GET"], endpoint="active_timetable")
    def active_timetable(stream_id: str):
        user_id = current_user_id()
        day = parse_date(request.args.get("date"), "date") or datetime_utils.today()
        timetable = container.timetable_service.active_timetable(user_id=user_id, stream_id=stream_id, day=day)
        return success(timetable)

    @app.route("/api/timetables/<int:timetable_id>", methods=["GET"], endpoint="timetable_details")
    def timetable_details(timetable_id: int):
        timetable = container.timetable_service.timetable_details(user_id=current_user_id(), timetable_id=timetable_id)
        return success(timetable)

    @app.route("/api/timetables/<int:timetable_id>/end-date", methods=["POST"], endpoint="set_timetable_end_date")
    def set_timetable_end_date(timetable_id: int):
        user_id = current_user_id()
        data = json_body()
        timetable = container.timetable_service.set_timetable_end_date(
            user_id=user_id,
            timetable_id=timetable_id,
            valid_until=parse_date(data.get("valid_until"), "valid_until", required=True),
        )
        return success(timetable)

    @app.route("/api/streams/<stream_id>/schedule", methods=["GET"], endpoint="stream_schedule")
    def stream_schedule(stream_id: str):
        """Base schedule by default; ?effective=1 applies overrides."""
        user_id = current_user_id()
        start = parse_date(request.args.get("start"), "start", required=True)
        end = parse_date(request.args.get("end"), "end", required=True)
        if request.args.get("effective", "").lower() in {"1", "true", "yes"}:
            slots = container.schedule_service.effective_schedule(
                user_id=user_id, stream_id=stream_id, start=start, end=end
            )
        else:
            slots = container.schedule_service.expanded_schedule(
                user_id=user_id, stream_id=stream_id, start=start, end=end
            )
        return success(slots)
