"""Forward-looking "how many more classes must I attend" projection.

    total_potential = current_held + future_held
    raw_needed      = ceil(target / 100 * total_potential - current_attended)
    needed          = clamp(raw_needed, 0, future_held)
    can_skip        = future_held - needed
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_CEILING, Decimal
from typing import Optional

from ..common import datetime_utils
from ..common.numbers import percentage, round2
from ..common.validators import optional_text, require_non_negative_int, require_percentage
from ..core.enums import ProjectionOutcome
from ..core.exceptions import NotFoundError, ValidationError
from ..schedule.window import ScheduleWindowLoader
from ..streams.service import StreamAccessService
from .model import Projection
from .service import AnalyticsService


def _fmt_pct(value: float) -> str:
    return f"{value:g}"


def compute_projection(
    *,
    target_percentage: float,
    target_date: date,
    current_attended: int,
    current_held: int,
    future_held: int,
    subject_name: Optional[str] = None,
) -> Projection:
    total_potential = current_held + future_held
    raw_needed = int(
        (Decimal(str(target_percentage)) * total_potential / 100 - current_attended).to_integral_value(
            rounding=ROUND_CEILING
        )
    )
    needed = min(future_held, max(0, raw_needed))
    can_skip = future_held - needed
    current_pct = percentage(current_attended, current_held)

    day = datetime_utils.format_day(target_date)
    scope = f" for {subject_name}" if subject_name else ""
    prefix = f"To reach {_fmt_pct(target_percentage)}% by {day}{scope}: "
    max_pct = None

    if total_potential <= 0:
        outcome = ProjectionOutcome.NO_CLASSES
        message = f"No classes{scope} were held or are scheduled to be held by {day}. Cannot calculate percentage."
    elif raw_needed > future_held:
        outcome = ProjectionOutcome.UNREACHABLE
        max_pct = round2((current_attended + future_held) / total_potential * 100)
        message = (
            f"Even if you attend all {future_held} upcoming held classes, the maximum percentage you can "
            f"reach by {day} is approximately {max_pct:.1f}%. Your target of {_fmt_pct(target_percentage)}% "
            "is unreachable in this period."
        )
    elif needed <= 0 and current_pct is not None and current_pct >= target_percentage:
        outcome = ProjectionOutcome.TARGET_MET
        message = prefix + f"you have already met or exceeded the target! You can skip all {future_held} upcoming held classes."
    elif future_held == 0:
        outcome = ProjectionOutcome.NO_FUTURE_CLASSES
        needed = 0
        shown = "N/A" if current_pct is None else _fmt_pct(current_pct)
        message = f"No more classes are scheduled to be held{scope} until {day}. Current percentage is {shown}%."
    else:
        outcome = ProjectionOutcome.ON_TRACK
        message = prefix + f"you need to attend {needed} out of the next {future_held} held classes. You can skip {can_skip} classes."

    return Projection(
        target_percentage=float(target_percentage),
        target_date=target_date,
        subject_name=subject_name,
        current_attended=current_attended,
        current_held=current_held,
        current_percentage=current_pct,
        future_held=future_held,
        needed_to_attend=needed,
        can_skip=can_skip,
        outcome=outcome,
        message=message,
        max_achievable_percentage=max_pct,
    )


class ProjectionCalculator:
    def __init__(self, analytics: AnalyticsService, access: StreamAccessService, windows: ScheduleWindowLoader):
        self._analytics = analytics
        self._access = access
        self._windows = windows

    def _history(self, *, user_id: str, stream_id: str, subject_name: Optional[str], yesterday: date) -> tuple[int, int]:
        start = self._analytics.default_start(stream_id)
        if yesterday < start:
            return 0, 0
        try:
            stats = self._analytics.stream_stats(
                user_id=user_id,
                stream_id=stream_id,
                start=start,
                end=yesterday,
                subject_name=subject_name,
            )
        except NotFoundError:
            return 0, 0
        if subject_name is None:
            return stats.total_attended, stats.total_held
        for row in stats.subjects:
            if row.subject_name == subject_name:
                return row.attended, row.held
        return 0, 0

    def project(
        self,
        *,
        user_id: str,
        stream_id: str,
        target_percentage: float,
        target_date: date,
        subject_name: Optional[str] = None,
        manual_attended: Optional[int] = None,
        manual_held: Optional[int] = None,
        today: date | None = None,
    ) -> Projection:
        self._access.ensure_member(stream_id, user_id)
        today = today or datetime_utils.today()
        target_percentage = require_percentage(target_percentage)
        if target_date < today:
            raise ValidationError("Target date cannot be in the past.")
        subject_name = optional_text(subject_name)

        if manual_attended is not None:
            require_non_negative_int(manual_attended, "manual_attended")
        if manual_held is not None:
            require_non_negative_int(manual_held, "manual_held")

        # A single manual value is ignored; history is used instead.
        if manual_attended is not None and manual_held is not None:
            if manual_attended > manual_held:
                raise ValidationError("manual_attended cannot exceed manual_held")
            current_attended, current_held = manual_attended, manual_held
        else:
            current_attended, current_held = self._history(
                user_id=user_id,
                stream_id=stream_id,
                subject_name=subject_name,
                yesterday=today - timedelta(days=1),
            )

        tally = self._windows.load(stream_id, today, target_date).tally(subject_name)
        future_held = tally.held(subject_name) if subject_name else tally.total_held()

        return compute_projection(
            target_percentage=target_percentage,
            target_date=target_date,
            current_attended=current_attended,
            current_held=current_held,
            future_held=future_held,
            subject_name=subject_name,
        )
