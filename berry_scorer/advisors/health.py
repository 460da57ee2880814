"""
Plant health classification from a supplied 0–100 health score.

The score comes from the caller (typically ``ScoringResult.overall_score``);
nothing here simulates or infers it.

Classification cascade
----------------------
    score >= 80 → Healthy            / severity low
    score >= 60 → Minor Stress       / severity medium
    score >= 40 → Moderate Stress    / severity high
    score >= 20 → Severe Stress      / severity critical
    otherwise   → Critical Condition / severity critical

Confidence is higher at the extremes, where the classification is least
ambiguous::

    score > 90 or < 10 → 0.95
    score > 70 or < 30 → 0.85
    otherwise          → 0.75

A missing or non-finite score yields ``UNKNOWN`` at confidence 0.3.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from berry_scorer.scoring.cascade import Rule, RuleCascade, RuleOutcome
from berry_scorer.taxonomy.enums import Priority
from berry_scorer.utils.numeric import as_finite, clamp

UNKNOWN_CONFIDENCE = 0.3


class HealthClass(StrEnum):
    HEALTHY = "Healthy"
    MINOR_STRESS = "Minor Stress"
    MODERATE_STRESS = "Moderate Stress"
    SEVERE_STRESS = "Severe Stress"
    CRITICAL = "Critical Condition"
    UNKNOWN = "Unknown"


_RECOMMENDATIONS: dict[HealthClass, tuple[str, ...]] = {
    HealthClass.HEALTHY: (
        "Continue current care routine",
        "Monitor for any changes",
    ),
    HealthClass.MINOR_STRESS: (
        "Check soil moisture levels",
        "Ensure adequate lighting",
        "Monitor temperature fluctuations",
    ),
    HealthClass.MODERATE_STRESS: (
        "Adjust watering schedule",
        "Check for pests or diseases",
        "Consider nutrient supplementation",
        "Optimize environmental conditions",
    ),
    HealthClass.SEVERE_STRESS: (
        "Immediate intervention required",
        "Check root health",
        "Assess environmental stressors",
        "Consider plant relocation if needed",
    ),
    HealthClass.CRITICAL: (
        "URGENT: Immediate action required",
        "Isolate plant if contagious disease suspected",
        "Consult with plant health expert",
        "Consider replacement if recovery unlikely",
    ),
    HealthClass.UNKNOWN: (
        "Health score unavailable; inspect the plant manually",
    ),
}

_HEALTH_CASCADE = RuleCascade(
    rules=[
        Rule("healthy", lambda c: c["score"] >= 80,
             RuleOutcome(HealthClass.HEALTHY, Priority.LOW,
                         "Health score {score:.1f}: plant is healthy")),
        Rule("minor_stress", lambda c: c["score"] >= 60,
             RuleOutcome(HealthClass.MINOR_STRESS, Priority.MEDIUM,
                         "Health score {score:.1f}: minor stress detected")),
        Rule("moderate_stress", lambda c: c["score"] >= 40,
             RuleOutcome(HealthClass.MODERATE_STRESS, Priority.HIGH,
                         "Health score {score:.1f}: moderate stress detected")),
        Rule("severe_stress", lambda c: c["score"] >= 20,
             RuleOutcome(HealthClass.SEVERE_STRESS, Priority.CRITICAL,
                         "Health score {score:.1f}: severe stress detected")),
    ],
    default=RuleOutcome(HealthClass.CRITICAL, Priority.CRITICAL,
                        "Health score {score:.1f}: plant is in critical condition"),
)


@dataclass(frozen=True)
class HealthAnalysis:
    """Health classification for one plant.

    Attributes:
        health_score:    Score used (clamped to 0–100), or ``None`` if unusable.
        classification:  ``HealthClass`` label.
        severity:        Priority tier of the condition.
        confidence:      0.3–0.95.
        summary:         One-line reasoning from the classification cascade.
        recommendations: Care steps for the classification.
    """

    health_score: float | None
    classification: HealthClass
    severity: Priority
    confidence: float
    summary: str
    recommendations: tuple[str, ...]


def health_confidence(score: float) -> float:
    if score > 90 or score < 10:
        return 0.95
    if score > 70 or score < 30:
        return 0.85
    return 0.75


def analyze_health(health_score: Any) -> HealthAnalysis:
    """Classify a supplied health score."""
    score = as_finite(health_score)
    if score is None:
        return HealthAnalysis(
            health_score=None,
            classification=HealthClass.UNKNOWN,
            severity=Priority.HIGH,
            confidence=UNKNOWN_CONFIDENCE,
            summary="Health score unavailable",
            recommendations=_RECOMMENDATIONS[HealthClass.UNKNOWN],
        )

    score = clamp(score, 0.0, 100.0)
    outcome = _HEALTH_CASCADE.evaluate({"score": score})
    classification = HealthClass(outcome.action)
    return HealthAnalysis(
        health_score=round(score, 2),
        classification=classification,
        severity=outcome.priority,
        confidence=health_confidence(score),
        summary=outcome.reasoning,
        recommendations=_RECOMMENDATIONS[classification],
    )
