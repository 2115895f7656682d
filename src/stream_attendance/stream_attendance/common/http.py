from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthenticationError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
)


def to_json(value: Any) -> Any:
    """Dataclasses, dates and enums -> JSON-ready values (dates as YYYY-MM-DD)."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
        # Override variants carry their tag as a ClassVar, which fields() skips.
        tag = getattr(type(value), "override_type", None)
        if isinstance(tag, Enum):
            data["override_type"] = tag.value
        return data
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    return value


def success(data: Any = None, status: int = 200):
    return jsonify({"status": "success", "data": to_json(data)}), status


def fail(message: str, status: int):
    return jsonify({"status": "fail", "message": message}), status


def current_user_id() -> str:
    user_id = session.get("user_id")
    if user_id is None or str(user_id).strip() == "":
        raise AuthenticationError("Authentication required")
    return str(user_id)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_date(value: Any, field_name: str, *, required: bool = False) -> Optional[date]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)") from None


def parse_int(value: Any, field_name: str, *, required: bool = False) -> Optional[int]:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None


def _request_context() -> dict:
    context: dict = dict(request.view_args or {})
    body = request.get_json(silent=True)
    sources = [request.args, body if isinstance(body, dict) else {}]
    for name in ("stream_id", "streamId", "class_date", "date", "subject_name"):
        for source in sources:
            if name in source and name not in context:
                context[name] = source.get(name)
    return context


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        for error_type, status in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                return fail(str(exc), status)
        return fail(str(exc), 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return fail(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.error(
            "Unhandled error on %s %s (context=%s)",
            request.method,
            request.path,
            _request_context(),
            exc_info=exc,
        )
        return jsonify({"status": "error", "message": "Internal server error"}), 500
