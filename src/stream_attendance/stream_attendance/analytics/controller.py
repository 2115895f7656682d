from __future__ import annotations

from flask import Flask, request

from ..common.http import current_user_id, json_body, parse_date, parse_int, success
from ..container import Container
from ..core.exceptions import ValidationError


def _percentage(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("target_percentage must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("target_percentage must be a number") from None


def register(app: Flask, container: Container) -> None:
    @app.route("/api/analytics/streams/<stream_id>", methods=["GET"], endpoint="stream_analytics")
    def stream_analytics(stream_id: str):
        stats = container.analytics_service.stream_stats(
            user_id=current_user_id(),
            stream_id=stream_id,
            target_user_id=request.args.get("userId"),
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
        )
        return success(stats)

    @app.route("/api/analytics/projection", methods=["POST"], endpoint="attendance_projection")
    def attendance_projection():
        user_id = current_user_id()
        data = json_body()
        projection = container.projection_calculator.project(
            user_id=user_id,
            stream_id=str(data.get("stream_id") or ""),
            target_percentage=_percentage(data.get("target_percentage")),
            target_date=parse_date(data.get("target_date"), "target_date", required=True),
            subject_name=data.get("subject_name"),
            manual_attended=parse_int(data.get("manual_attended"), "manual_attended"),
            manual_held=parse_int(data.get("manual_held"), "manual_held"),
        )
        return success(projection)
