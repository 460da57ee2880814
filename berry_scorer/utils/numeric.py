"""Small numeric helpers shared by the scoring components and advisors."""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def as_finite(value: Any) -> Optional[float]:
    """Coerce ``value`` to a finite float, or ``None`` when that is impossible.

    Booleans are rejected; ``True`` is not a measurement.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def mean(values: list[float]) -> float:
    """Arithmetic mean; 0.0 for an empty list."""
    return sum(values) / len(values) if values else 0.0


def recent_shift(values: Sequence[float], recent: int = 3) -> Optional[float]:
    """Mean of the last ``recent`` values minus the mean of the ones before them.

    ``None`` when there are not enough values for both windows.
    """
    if len(values) <= recent:
        return None
    earlier, latest = list(values[:-recent]), list(values[-recent:])
    return mean(latest) - mean(earlier)
