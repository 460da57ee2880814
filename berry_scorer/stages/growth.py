"""
Growth-stage state machine driven by days since planting.

Stage windows (days since planting)
-----------------------------------
    germination    0 –   7   (typical day   5)
    seedling       7 –  21   (typical day  14)
    vegetative    21 –  60   (typical day  40)
    flowering     60 –  90   (typical day  75)
    fruiting      90 – 120   (typical day 105)
    harvest-ready 120 – 140  (typical day 130)
    post-harvest  140 – 365  (typical day 200)

A day that sits exactly on a boundary belongs to the earlier stage.

Derived values
--------------
    progress   = clamp((days − start) / (end − start) · 100, 0, 100)
    confidence = max(0.5, 1 − |days − typical| / (end − start))
    days_left  = round(stage_duration · (100 − progress) / 100)

The stage after post-harvest is germination when ``cyclic=True`` (recurring
crop cycles); with ``cyclic=False`` post-harvest is terminal.

Negative or non-finite day counts do not raise: they are treated as day 0
and the analysis is returned at the minimum confidence with ``valid=False``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from berry_scorer.taxonomy.enums import GrowthStage
from berry_scorer.utils.numeric import as_finite, clamp

logger = logging.getLogger(__name__)

MIN_STAGE_CONFIDENCE = 0.5
TRANSITION_PROGRESS = 80.0


@dataclass(frozen=True)
class StageWindow:
    """Day window for one stage.

    Attributes:
        start:    First day (exclusive, except germination which starts at 0).
        end:      Last day of the stage (inclusive).
        typical:  Day with the highest classification confidence.
        duration: Nominal days spent in the stage, for days-to-next estimates.
    """

    start: float
    end: float
    typical: float
    duration: float

    @property
    def width(self) -> float:
        return self.end - self.start


STAGE_WINDOWS: dict[GrowthStage, StageWindow] = {
    GrowthStage.GERMINATION:   StageWindow(0.0,     7.0,   5.0,   7.0),
    GrowthStage.SEEDLING:      StageWindow(7.0,    21.0,  14.0,  14.0),
    GrowthStage.VEGETATIVE:    StageWindow(21.0,   60.0,  40.0,  39.0),
    GrowthStage.FLOWERING:     StageWindow(60.0,   90.0,  75.0,  30.0),
    GrowthStage.FRUITING:      StageWindow(90.0,  120.0, 105.0,  30.0),
    GrowthStage.HARVEST_READY: StageWindow(120.0, 140.0, 130.0,  20.0),
    GrowthStage.POST_HARVEST:  StageWindow(140.0, 365.0, 200.0, 225.0),
}

CARE_RECOMMENDATIONS: dict[GrowthStage, tuple[str, ...]] = {
    GrowthStage.GERMINATION: (
        "Maintain consistent soil moisture",
        "Keep temperature between 18-24°C",
        "Ensure adequate humidity (70-80%)",
        "Provide gentle, indirect light",
    ),
    GrowthStage.SEEDLING: (
        "Gradually increase light exposure",
        "Maintain soil moisture without overwatering",
        "Begin gentle fertilization",
        "Monitor for damping off disease",
    ),
    GrowthStage.VEGETATIVE: (
        "Provide 14-16 hours of light daily",
        "Maintain consistent watering schedule",
        "Apply balanced fertilizer every 2 weeks",
        "Ensure good air circulation",
        "Monitor for pest infestations",
    ),
    GrowthStage.FLOWERING: (
        "Reduce nitrogen, increase phosphorus",
        "Maintain consistent moisture",
        "Ensure adequate pollination",
        "Monitor temperature (18-24°C)",
        "Provide 12-14 hours of light",
    ),
    GrowthStage.FRUITING: (
        "Increase potassium for fruit development",
        "Maintain consistent watering",
        "Support heavy fruit clusters",
        "Monitor for pests and diseases",
        "Ensure adequate calcium for fruit quality",
    ),
    GrowthStage.HARVEST_READY: (
        "Reduce watering slightly",
        "Monitor fruit color and firmness",
        "Prepare for harvest timing",
        "Check for optimal ripeness indicators",
        "Plan harvest schedule",
    ),
    GrowthStage.POST_HARVEST: (
        "Clean up plant debris",
        "Assess plant health for next cycle",
        "Prepare soil for next planting",
        "Document yield and quality data",
        "Plan for crop rotation if needed",
    ),
}


@dataclass(frozen=True)
class GrowthStageAnalysis:
    """Stage classification for one plant.

    Attributes:
        stage:                Current stage.
        confidence:           0.5–1.0; highest near the stage's typical day.
        progress:             0–100 percent through the current stage.
        days_to_next_stage:   Whole days until the next stage (estimate).
        next_stage:           Following stage, or ``None`` if terminal.
        is_transitioning:     True once progress exceeds 80%.
        care_recommendations: Stage-specific care steps.
        valid:                False when the day count was negative or non-finite.
    """

    stage: GrowthStage
    confidence: float
    progress: float
    days_to_next_stage: int
    next_stage: Optional[GrowthStage]
    is_transitioning: bool
    care_recommendations: tuple[str, ...]
    valid: bool = True


def classify_stage(days_since_planting: float) -> GrowthStage:
    """Stage whose window contains ``days_since_planting`` (boundaries → earlier stage)."""
    for stage, window in STAGE_WINDOWS.items():
        if days_since_planting <= window.end:
            return stage
    return GrowthStage.POST_HARVEST


def stage_progress(stage: GrowthStage, days_since_planting: float) -> float:
    """Linear progress through ``stage``, clamped to [0, 100]."""
    window = STAGE_WINDOWS[stage]
    fraction = (days_since_planting - window.start) / window.width
    return clamp(fraction * 100.0, 0.0, 100.0)


def stage_confidence(stage: GrowthStage, days_since_planting: float) -> float:
    """Classification confidence, highest on the typical day, floored at 0.5."""
    window = STAGE_WINDOWS[stage]
    distance = abs(days_since_planting - window.typical)
    return max(MIN_STAGE_CONFIDENCE, 1.0 - distance / window.width)


def estimate_days_to_next_stage(stage: GrowthStage, progress: float) -> int:
    remaining = (100.0 - clamp(progress, 0.0, 100.0)) / 100.0
    return round(STAGE_WINDOWS[stage].duration * remaining)


def next_stage(stage: GrowthStage, cyclic: bool = True) -> Optional[GrowthStage]:
    """Following stage in the cycle; ``None`` after post-harvest when not cyclic."""
    stages = list(GrowthStage)
    if stage.position + 1 < len(stages):
        return stages[stage.position + 1]
    return stages[0] if cyclic else None


def care_recommendations(stage: GrowthStage) -> list[str]:
    return list(CARE_RECOMMENDATIONS[stage])


def analyze_growth_stage(days_since_planting: float, cyclic: bool = True) -> GrowthStageAnalysis:
    """Full stage analysis for a plant ``days_since_planting`` days old.

    Args:
        days_since_planting: Age of the plant in days.
        cyclic:              Whether post-harvest wraps to germination.

    Returns:
        ``GrowthStageAnalysis``; degraded (``valid=False``, minimum
        confidence) for a negative or non-finite day count.
    """
    days = as_finite(days_since_planting)
    valid = days is not None and days >= 0.0
    if not valid:
        logger.warning("Invalid days since planting %r; treating as day 0", days_since_planting)
        days = 0.0

    stage = classify_stage(days)
    progress = round(stage_progress(stage, days), 2)
    confidence = stage_confidence(stage, days) if valid else MIN_STAGE_CONFIDENCE

    return GrowthStageAnalysis(
        stage=stage,
        confidence=round(confidence, 4),
        progress=progress,
        days_to_next_stage=estimate_days_to_next_stage(stage, progress),
        next_stage=next_stage(stage, cyclic=cyclic),
        is_transitioning=progress > TRANSITION_PROGRESS,
        care_recommendations=CARE_RECOMMENDATIONS[stage],
        valid=valid,
    )


# ── Progression tracking ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class StageObservation:
    """One dated stage observation; ``day`` counts days since planting."""

    stage: GrowthStage
    day: float


@dataclass(frozen=True)
class StageTransition:
    from_stage: GrowthStage
    to_stage: GrowthStage
    day: float


@dataclass(frozen=True)
class GrowthProgression:
    """Summary of a plant's observed stage history.

    Attributes:
        transitions:            Stage changes in observation order.
        average_stage_duration: Mean days spent in a stage before each
                                transition (0.0 with no transitions).
        growth_rate:            Stage positions advanced per day between the
                                first and last observation (0.0 if < 2 obs).
    """

    transitions: tuple[StageTransition, ...] = field(default_factory=tuple)
    average_stage_duration: float = 0.0
    growth_rate: float = 0.0


def track_progression(observations: Sequence[StageObservation]) -> GrowthProgression:
    """Detect transitions and growth rate from observations ordered by day.

    Raises:
        ValueError: If observations are not in non-decreasing day order.
    """
    if len(observations) < 2:
        return GrowthProgression()

    for previous, current in zip(observations, observations[1:]):
        if current.day < previous.day:
            raise ValueError(
                f"Observations must be ordered by day, got {current.day} after {previous.day}."
            )

    transitions: list[StageTransition] = []
    durations: list[float] = []
    stage_start = observations[0].day
    for previous, current in zip(observations, observations[1:]):
        if current.stage != previous.stage:
            transitions.append(StageTransition(previous.stage, current.stage, current.day))
            durations.append(current.day - stage_start)
            stage_start = current.day

    total_days = observations[-1].day - observations[0].day
    advanced = observations[-1].stage.position - observations[0].stage.position
    growth_rate = advanced / total_days if total_days > 0 else 0.0
    average = sum(durations) / len(durations) if durations else 0.0

    return GrowthProgression(
        transitions=tuple(transitions),
        average_stage_duration=round(average, 2),
        growth_rate=round(growth_rate, 4),
    )
