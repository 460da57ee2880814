"""
Berry quality grading from supplied berry metrics.

Overall score (0–100) is a weighted mean over the metrics supplied::

    size 0.25 · shape 0.20 · color 0.20 · firmness 0.15 · ripeness 0.15 · brix 0.05

Size (mm) is normalized against 25 mm and brix against 12 °Bx, both capped
at 100.  Grades use the same A–F thresholds as the plant scorer.

Harvest timing cascade
----------------------
    ripeness >= 85 and firmness >= 60 → harvest now        (0 days)
    ripeness >= 70 and firmness >= 70 → wait 1–2 days      (1 day)
    ripeness >= 50 and firmness >= 80 → wait 3–5 days      (3 days)
    otherwise                         → wait a week or more (no estimate)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional, Sequence

from berry_scorer.scoring.cascade import Rule, RuleCascade, RuleOutcome
from berry_scorer.scoring.recommendations import grade_for
from berry_scorer.taxonomy.enums import Grade, Priority, Trend
from berry_scorer.utils.numeric import as_finite, clamp, mean, recent_shift

QUALITY_WEIGHTS: dict[str, float] = {
    "size": 0.25,
    "shape": 0.20,
    "color_uniformity": 0.20,
    "firmness": 0.15,
    "ripeness": 0.15,
    "brix": 0.05,
}

FULL_SIZE_MM = 25.0
FULL_BRIX = 12.0
MIN_QUALITY_CONFIDENCE = 0.6
MISSING_METRIC_PENALTY = 0.1
TREND_THRESHOLD = 5.0


class HarvestTiming(StrEnum):
    HARVEST_NOW = "harvest_now"
    WAIT_1_2_DAYS = "wait_1_2_days"
    WAIT_3_5_DAYS = "wait_3_5_days"
    WAIT_WEEK_PLUS = "wait_week_plus"


_HARVEST_DAYS: dict[HarvestTiming, Optional[int]] = {
    HarvestTiming.HARVEST_NOW: 0,
    HarvestTiming.WAIT_1_2_DAYS: 1,
    HarvestTiming.WAIT_3_5_DAYS: 3,
    HarvestTiming.WAIT_WEEK_PLUS: None,
}

_HARVEST_CASCADE = RuleCascade(
    rules=[
        Rule("ripe", lambda c: c["ripeness"] >= 85 and c["firmness"] >= 60,
             RuleOutcome(HarvestTiming.HARVEST_NOW, Priority.HIGH,
                         "Ripeness {ripeness:.0f}% with firmness {firmness:.0f}: harvest now")),
        Rule("nearly_ripe", lambda c: c["ripeness"] >= 70 and c["firmness"] >= 70,
             RuleOutcome(HarvestTiming.WAIT_1_2_DAYS, Priority.MEDIUM,
                         "Ripeness {ripeness:.0f}%: harvest in 1-2 days")),
        Rule("ripening", lambda c: c["ripeness"] >= 50 and c["firmness"] >= 80,
             RuleOutcome(HarvestTiming.WAIT_3_5_DAYS, Priority.LOW,
                         "Ripeness {ripeness:.0f}%: harvest in 3-5 days")),
    ],
    default=RuleOutcome(HarvestTiming.WAIT_WEEK_PLUS, Priority.LOW,
                        "Ripeness {ripeness:.0f}%: too early to schedule harvest"),
)

_GRADE_RECOMMENDATIONS: dict[Grade, tuple[str, ...]] = {
    Grade.A: ("Excellent quality - ready for premium market",
              "Maintain current growing conditions",
              "Consider harvesting within 1-2 days"),
    Grade.B: ("Good quality - suitable for standard market",
              "Monitor for optimal harvest timing",
              "Ensure consistent watering"),
    Grade.C: ("Acceptable quality - may need improvement",
              "Check nutrient levels",
              "Optimize environmental conditions",
              "Consider extended ripening period"),
    Grade.D: ("Below average quality - needs attention",
              "Assess growing conditions",
              "Check for pest or disease issues",
              "Consider adjusting nutrient regimen"),
    Grade.F: ("Poor quality - immediate intervention required",
              "Diagnose underlying issues",
              "Consider plant health assessment",
              "May need to discard affected berries"),
}


@dataclass(frozen=True)
class BerryMetrics:
    """Measured berry attributes; any may be absent.

    Attributes:
        size:             Diameter in mm.
        shape:            0–100 (100 = ideal conical shape).
        color_uniformity: 0–100.
        firmness:         0–100.
        ripeness:         0–100 percent.
        brix:             Sugar content, °Bx.
    """

    size: Optional[float] = None
    shape: Optional[float] = None
    color_uniformity: Optional[float] = None
    firmness: Optional[float] = None
    ripeness: Optional[float] = None
    brix: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BerryMetrics":
        aliases = {
            "colorUniformity": "color_uniformity",
            "firmnessPrediction": "firmness",
            "ripenessLevel": "ripeness",
            "brixPrediction": "brix",
        }
        values = {aliases.get(k, k): as_finite(v) for k, v in data.items()}
        return cls(**{name: values.get(name) for name in QUALITY_WEIGHTS})


@dataclass(frozen=True)
class QualityAssessment:
    """Quality grade and harvest timing for one batch of berries.

    Attributes:
        overall_score:   0–100 weighted quality score.
        grade:           A–F.
        harvest_timing:  Harvest recommendation.
        days_to_harvest: 0, 1 or 3; ``None`` when too early to tell.
        confidence:      0.3–1.0; lower when metrics are missing or atypical.
        recommendations: Grade guidance followed by metric-specific notes.
        missing_metrics: Metrics that were not supplied.
    """

    overall_score: float
    grade: Grade
    harvest_timing: HarvestTiming
    days_to_harvest: Optional[int]
    confidence: float
    recommendations: tuple[str, ...]
    missing_metrics: tuple[str, ...] = ()


def normalized_metrics(metrics: BerryMetrics) -> dict[str, float]:
    """Present metrics on a 0–100 scale."""
    normalized: dict[str, float] = {}
    for name in QUALITY_WEIGHTS:
        value = getattr(metrics, name)
        if value is None:
            continue
        if name == "size":
            value = value / FULL_SIZE_MM * 100.0
        elif name == "brix":
            value = value / FULL_BRIX * 100.0
        normalized[name] = clamp(value, 0.0, 100.0)
    return normalized


def quality_score(metrics: BerryMetrics) -> float:
    normalized = normalized_metrics(metrics)
    total_weight = sum(QUALITY_WEIGHTS[name] for name in normalized)
    if total_weight <= 0:
        return 0.0
    return sum(QUALITY_WEIGHTS[name] * v for name, v in normalized.items()) / total_weight


def quality_confidence(metrics: BerryMetrics) -> float:
    """Closeness of shape/color/firmness to typical values, floored at 0.6.

    Each missing metric then costs ``MISSING_METRIC_PENALTY``.
    """
    reference = {"shape": 85.0, "color_uniformity": 80.0, "firmness": 70.0}
    squares = [
        (getattr(metrics, name) - typical) ** 2
        for name, typical in reference.items()
        if getattr(metrics, name) is not None
    ]
    spread = math.sqrt(sum(squares)) / 3.0
    confidence = max(MIN_QUALITY_CONFIDENCE, 1.0 - spread / 100.0)
    missing = sum(1 for name in QUALITY_WEIGHTS if getattr(metrics, name) is None)
    confidence -= MISSING_METRIC_PENALTY * missing
    return round(clamp(confidence, 0.3, 1.0), 4)


def quality_recommendations(grade: Grade, metrics: BerryMetrics) -> list[str]:
    recommendations = list(_GRADE_RECOMMENDATIONS[grade])
    if metrics.size is not None and metrics.size < 15:
        recommendations.append("Berry size below optimal - check nutrient availability")
    if metrics.shape is not None and metrics.shape < 75:
        recommendations.append("Irregular shape detected - ensure consistent growing conditions")
    if metrics.color_uniformity is not None and metrics.color_uniformity < 70:
        recommendations.append("Color inconsistency - check for disease or nutrient deficiency")
    if metrics.firmness is not None and metrics.firmness < 50:
        recommendations.append("Soft berries detected - may be overripe or diseased")
    return recommendations


def assess_quality(metrics: BerryMetrics) -> QualityAssessment:
    """Grade berries and decide harvest timing.

    Missing ripeness or firmness counts as 0 for harvest timing, so
    incomplete data never triggers an early harvest.
    """
    score = round(quality_score(metrics), 2)
    grade = grade_for(score)
    timing = _HARVEST_CASCADE.evaluate({
        "ripeness": metrics.ripeness if metrics.ripeness is not None else 0.0,
        "firmness": metrics.firmness if metrics.firmness is not None else 0.0,
    })
    harvest = HarvestTiming(timing.action)

    return QualityAssessment(
        overall_score=score,
        grade=grade,
        harvest_timing=harvest,
        days_to_harvest=_HARVEST_DAYS[harvest],
        confidence=quality_confidence(metrics),
        recommendations=tuple(quality_recommendations(grade, metrics)),
        missing_metrics=tuple(n for n in QUALITY_WEIGHTS if getattr(metrics, n) is None),
    )


# ── Trend ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class QualityTrend:
    trend: Trend
    average_quality: float
    consistency_score: float
    recommendations: tuple[str, ...]


def quality_trends(scores: Sequence[float]) -> QualityTrend:
    """Trend and consistency of past overall quality scores, oldest first."""
    if len(scores) < 2:
        return QualityTrend(Trend.STABLE, 0.0, 0.0, ("Insufficient data for trend analysis",))

    average = mean(list(scores))
    shift = recent_shift(scores)
    trend = Trend.STABLE
    if shift is not None and shift > TREND_THRESHOLD:
        trend = Trend.IMPROVING
    elif shift is not None and shift < -TREND_THRESHOLD:
        trend = Trend.DECLINING

    variance = mean([(s - average) ** 2 for s in scores])
    consistency = max(0.0, 100.0 - math.sqrt(variance))

    recommendations = {
        Trend.IMPROVING: ["Quality is improving - maintain current practices",
                          "Consider documenting successful techniques"],
        Trend.STABLE: ["Quality is stable - consider optimization opportunities"],
        Trend.DECLINING: ["Quality is declining - investigate potential issues",
                          "Review environmental conditions",
                          "Check for pest or disease problems"],
    }[trend]
    if average < 70:
        recommendations.append("Overall quality below target - implement improvement plan")
    if consistency < 80:
        recommendations.append("Inconsistent quality - standardize growing practices")

    return QualityTrend(
        trend=trend,
        average_quality=round(average, 2),
        consistency_score=round(consistency, 2),
        recommendations=tuple(recommendations),
    )
