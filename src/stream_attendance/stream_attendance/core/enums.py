from __future__ import annotations

from enum import Enum


class StreamRole(str, Enum):
    """Role of a user inside one stream."""

    ADMIN = "admin"
    MEMBER = "member"


class AttendanceStatus(str, Enum):
    """Per-user status of one concrete class instance."""

    OCCURRED = "OCCURRED"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"


class OverrideType(str, Enum):
    """Kind of admin-authored dated exception to the weekly timetable."""

    CANCELLED = "CANCELLED"
    REPLACED = "REPLACED"
    ADDED = "ADDED"


class ProjectionOutcome(str, Enum):
    NO_CLASSES = "NO_CLASSES"
    UNREACHABLE = "UNREACHABLE"
    TARGET_MET = "TARGET_MET"
    NO_FUTURE_CLASSES = "NO_FUTURE_CLASSES"
    ON_TRACK = "ON_TRACK"
