from __future__ import annotations

from flask import Flask, request

from ..common.http import current_user_id, json_body, parse_date, parse_int, success, to_json
from ..container import Container
from ..core.exceptions import ValidationError
from .model import WeeklyViewEntry


def _weekly_row(entry: WeeklyViewEntry) -> dict:
    row = to_json(entry.slot)
    row.update(status=entry.status.value, record_id=entry.record_id, marked_at=to_json(entry.marked_at))
    return row


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/mark", methods=["POST"], endpoint="mark_attendance")
    def mark_attendance():
        user_id = current_user_id()
        data = json_body()
        record = container.attendance_ledger.mark(
            user_id=user_id,
            stream_id=str(data.get("stream_id") or ""),
            subject_name=str(data.get("subject_name") or ""),
            class_date=parse_date(data.get("class_date"), "class_date", required=True),
            subject_index=parse_int(data.get("subject_index", 0), "subject_index", required=True),
            status=data.get("status"),
            course_code=data.get("course_code"),
        )
        return success(record)

    @app.route("/api/attendance/weekly/<stream_id>", methods=["GET"], endpoint="weekly_attendance")
    def weekly_attendance(stream_id: str):
        view = container.attendance_ledger.effective_weekly_view(
            user_id=current_user_id(),
            stream_id=stream_id,
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
        )
        return success([_weekly_row(e) for e in view])

    @app.route("/api/attendance/records", methods=["GET"], endpoint="attendance_records")
    def attendance_records():
        user_id = current_user_id()
        stream_id = request.args.get("streamId")
        if not stream_id:
            raise ValidationError("streamId is required")
        records = container.attendance_ledger.records(
            user_id=user_id,
            stream_id=stream_id,
            target_user_id=request.args.get("userId"),
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
            subject_name=request.args.get("subjectName"),
        )
        return success(list(records))

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="record_bulk_attendance")
    def record_bulk_attendance():
        user_id = current_user_id()
        data = json_body()
        attendance = data.get("attendance")
        if not isinstance(attendance, dict):
            raise ValidationError("attendance must map subject names to attended counts")
        result = container.attendance_ledger.record_bulk(
            user_id=user_id,
            stream_id=str(data.get("stream_id") or ""),
            start_date=parse_date(data.get("start_date"), "start_date", required=True),
            end_date=parse_date(data.get("end_date"), "end_date"),
            attendance={str(k): parse_int(v, f"attendance[{k}]", required=True) for k, v in attendance.items()},
        )
        return success(
            {
                "created": len(result.created),
                "entries": to_json(result.created),
                "skipped_subjects": list(result.skipped_subjects),
            },
            201,
        )

    @app.route("/api/attendance/bulk/<stream_id>", methods=["GET"], endpoint="bulk_attendance_entries")
    def bulk_attendance_entries(stream_id: str):
        entries = container.attendance_ledger.bulk_entries(user_id=current_user_id(), stream_id=stream_id)
        return success(list(entries))
