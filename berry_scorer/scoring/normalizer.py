"""
Signal normalizer: raw reading + target range → 0–100 sub-score.

Piecewise-linear band, evaluated separately on each side of ``optimal``
(``half`` is the distance from optimal to the band edge on that side)::

    score
    100 ┤━━━━━━━┓
        │       ┗━━━━━┓                 tolerance = tolerance_fraction * half
    edge┤             ┗━┓
        │               ┗━━━┓
      0 ┤                   ┗━━━━━━━━━  one further ``half`` beyond the edge
        └───────┬─────┬─────────┬────→ |value − optimal|
               tol   half     2·half

  - |d| <= tolerance       → 100
  - tolerance < |d| <= half → linear 100 → edge_score
  - beyond the band edge    → linear edge_score → 0 over one more ``half``

The score never increases as the value moves farther from optimal on the same
side.  Readings outside the physical bounds are clamped first and reported
with ``valid=False``; no exception is raised for any numeric input.
"""

from __future__ import annotations

from typing import Optional

from berry_scorer.models.scoring import SubScore
from berry_scorer.taxonomy.enums import SignalName
from berry_scorer.taxonomy.tables import PhysicalBounds, TargetRange

FULL_SCORE = 100.0


def band_score(
    value: float,
    target: TargetRange,
    tolerance_fraction: float = 0.25,
    edge_score: float = 70.0,
    tolerance: Optional[float] = None,
) -> float:
    """Score ``value`` against ``target`` on the 0–100 piecewise-linear band.

    Args:
        value:              Reading (already clamped to physical bounds).
        target:             Target range for the signal.
        tolerance_fraction: Share of the half-band that scores a full 100.
        edge_score:         Score exactly at the band edge.
        tolerance:          Absolute tolerance; overrides ``tolerance_fraction``.

    Returns:
        Sub-score in [0, 100].
    """
    deviation = value - target.optimal
    distance = abs(deviation)
    if deviation >= 0:
        half, other = target.max - target.optimal, target.optimal - target.min
    else:
        half, other = target.optimal - target.min, target.max - target.optimal

    tol = half * tolerance_fraction if tolerance is None else max(0.0, tolerance)
    tol = min(tol, half)

    if distance <= tol:
        return FULL_SCORE
    if distance <= half:
        return FULL_SCORE - (FULL_SCORE - edge_score) * (distance - tol) / (half - tol)

    # Degenerate side (optimal sits on the band edge): borrow the other side's width.
    falloff = half if half > 0 else (other if other > 0 else 1.0)
    beyond = distance - half
    return edge_score * max(0.0, 1.0 - beyond / falloff)


def normalize_signal(
    signal: SignalName,
    raw_value: float,
    target: TargetRange,
    bounds: PhysicalBounds,
    tolerance_fraction: float = 0.25,
    edge_score: float = 70.0,
    tolerance: Optional[float] = None,
) -> SubScore:
    """Clamp, score and package one reading as a ``SubScore``.

    Args:
        signal:    Signal being scored.
        raw_value: Finite reading as supplied by the caller.
        target:    Target range for the current growth-stage context.
        bounds:    Physical sensor bounds; readings outside are clamped.

    Returns:
        ``SubScore`` with ``valid=False`` when clamping was needed.
    """
    valid = bounds.contains(raw_value)
    value = bounds.clamp(raw_value)
    score = band_score(
        value,
        target,
        tolerance_fraction=tolerance_fraction,
        edge_score=edge_score,
        tolerance=tolerance,
    )
    return SubScore(
        signal=signal,
        raw_value=raw_value,
        value=value,
        score=round(score, 2),
        target_min=target.min,
        target_optimal=target.optimal,
        target_max=target.max,
        valid=valid,
    )
