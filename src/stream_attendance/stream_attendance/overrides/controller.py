from __future__ import annotations

from flask import Flask, request

from ..common.http import current_user_id, json_body, parse_date, parse_int, success
from ..container import Container
from .model import Replacement


def _replacement_from_body(data: dict) -> Replacement:
    return Replacement(
        subject_name=str(data.get("replacement_subject_name") or ""),
        course_code=data.get("replacement_course_code"),
        start_time=data.get("replacement_start_time"),
        end_time=data.get("replacement_end_time"),
    )


def _slot_args(data: dict) -> dict:
    return dict(
        stream_id=str(data.get("stream_id") or ""),
        class_date=parse_date(data.get("class_date"), "class_date", required=True),
        subject_name=str(data.get("subject_name") or ""),
        entry_index=parse_int(data.get("entry_index", 0), "entry_index", required=True),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/cancel", methods=["POST"], endpoint="cancel_class")
    def cancel_class():
        user_id = current_user_id()
        change = container.override_service.cancel_class(user_id=user_id, **_slot_args(json_body()))
        return success(change, 201)

    @app.route("/api/attendance/replace", methods=["POST"], endpoint="replace_class")
    def replace_class():
        user_id = current_user_id()
        data = json_body()
        change = container.override_service.replace_class(
            user_id=user_id,
            replacement=_replacement_from_body(data),
            **_slot_args(data),
        )
        return success(change, 201)

    @app.route("/api/attendance/add", methods=["POST"], endpoint="add_class")
    def add_class():
        user_id = current_user_id()
        data = json_body()
        replacement = Replacement(
            subject_name=str(data.get("subject_name") or ""),
            course_code=data.get("course_code"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
        )
        change = container.override_service.add_class(
            user_id=user_id,
            stream_id=str(data.get("stream_id") or ""),
            class_date=parse_date(data.get("class_date"), "class_date", required=True),
            replacement=replacement,
            entry_index=parse_int(data.get("entry_index"), "entry_index"),
        )
        return success(change, 201)

    @app.route("/api/attendance/revert", methods=["POST"], endpoint="revert_override")
    def revert_override():
        user_id = current_user_id()
        removed = container.override_service.revert_override(user_id=user_id, **_slot_args(json_body()))
        return success(removed)

    @app.route("/api/streams/<stream_id>/overrides", methods=["GET"], endpoint="list_overrides")
    def list_overrides(stream_id: str):
        overrides = container.override_service.list_overrides(
            user_id=current_user_id(),
            stream_id=stream_id,
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
        )
        return success(list(overrides))
