from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import ProjectionOutcome


@dataclass(frozen=True)
class SubjectStats:
    subject_name: str
    course_code: Optional[str]
    scheduled: int
    cancelled: int
    replacements: int
    held: int
    attended: int
    percentage: Optional[float]


@dataclass(frozen=True)
class StreamStats:
    """Attendance of one user in one stream over [start, end].

    Percentages are None (never 0) when nothing was held.
    """

    stream_id: str
    user_id: str
    start: date
    end: date
    subjects: tuple[SubjectStats, ...]
    total_held: int
    total_attended: int
    overall_percentage: Optional[float]


@dataclass(frozen=True)
class Projection:
    target_percentage: float
    target_date: date
    subject_name: Optional[str]
    current_attended: int
    current_held: int
    current_percentage: Optional[float]
    future_held: int
    needed_to_attend: int
    can_skip: int
    outcome: ProjectionOutcome
    message: str
    max_achievable_percentage: Optional[float] = None
