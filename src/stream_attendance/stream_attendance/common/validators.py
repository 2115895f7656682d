from __future__ import annotations

import re
from typing import Optional

from ..core.exceptions import ValidationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def optional_time(value: Optional[str], field_name: str) -> Optional[str]:
    """Accept an HH:MM (24h) string or nothing; blank strings count as nothing."""
    value = (value or "").strip()
    if not value:
        return None
    if not _HHMM.match(value):
        raise ValidationError(f"{field_name} must be HH:MM (24h)")
    return value


def require_day_of_week(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 7:
        raise ValidationError("day_of_week must be between 1 (Monday) and 7 (Sunday)")
    return value


def require_non_negative_int(value: int, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer")
    return value


def require_percentage(value: float, field_name: str = "target_percentage") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")
    return float(value)


def require_date_range(start, end) -> None:
    if end < start:
        raise ValidationError("End date cannot be before start date.")
