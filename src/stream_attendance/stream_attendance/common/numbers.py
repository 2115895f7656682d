from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import PERCENT_DECIMALS


def round2(value: float) -> float:
    """Round half away from zero to two decimals (Python's round() is banker's rounding)."""
    quantum = Decimal(1).scaleb(-PERCENT_DECIMALS)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> Optional[float]:
    """part/whole as a rounded percentage; None (not 0) when there is nothing to divide by."""
    if whole <= 0:
        return None
    return round2(part / whole * 100)
