"""
Nutrient advisor: nutrient levels + water quality → adjustments and targets.

Per-nutrient adjustment
-----------------------
    deviation = |current − target|
    deviation <= tolerance        → no adjustment
    otherwise                     → increase/decrease by
                                    min(deviation, max_adjustment)

    severity = deviation / tolerance
    priority: critical if severity > 3   or health < 50
              high     if severity > 2   or health < 70
              medium   if severity > 1.5
              low      otherwise

A stress indicator matching one of the nutrient's deficiency symptoms
escalates the adjustment to critical.

Water targets
-------------
    pH adjustment = clamp(stage pH optimum − current pH, −1, +1)
    EC target     = clamp(stage EC optimum + health adjustment, 0.5, 2.5)
                    health < 60 → −0.2,  health > 90 → +0.1

Confidence starts at 0.8, is adjusted for plant health and water quality,
and is clamped to [0.3, 1.0].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional, Sequence

from berry_scorer.scoring.cascade import CascadeResult, Rule, RuleCascade, RuleOutcome
from berry_scorer.taxonomy.enums import Action, ControlAction, GrowthStage, Priority, SignalName
from berry_scorer.taxonomy.tables import targets_for
from berry_scorer.utils.numeric import as_finite, clamp

logger = logging.getLogger(__name__)


class Nutrient(StrEnum):
    NITROGEN = "nitrogen"
    PHOSPHORUS = "phosphorus"
    POTASSIUM = "potassium"
    CALCIUM = "calcium"
    MAGNESIUM = "magnesium"
    SULFUR = "sulfur"
    IRON = "iron"
    MANGANESE = "manganese"
    ZINC = "zinc"
    COPPER = "copper"
    BORON = "boron"
    MOLYBDENUM = "molybdenum"


# Acceptable deviation (ppm) before an adjustment is recommended.
NUTRIENT_TOLERANCE: dict[Nutrient, float] = {
    Nutrient.NITROGEN: 10.0,
    Nutrient.PHOSPHORUS: 5.0,
    Nutrient.POTASSIUM: 15.0,
    Nutrient.CALCIUM: 20.0,
    Nutrient.MAGNESIUM: 10.0,
    Nutrient.SULFUR: 5.0,
    Nutrient.IRON: 2.0,
    Nutrient.MANGANESE: 1.0,
    Nutrient.ZINC: 1.0,
    Nutrient.COPPER: 0.5,
    Nutrient.BORON: 0.5,
    Nutrient.MOLYBDENUM: 0.1,
}

# Largest single-step change (ppm).
MAX_ADJUSTMENT: dict[Nutrient, float] = {
    Nutrient.NITROGEN: 20.0,
    Nutrient.PHOSPHORUS: 10.0,
    Nutrient.POTASSIUM: 30.0,
    Nutrient.CALCIUM: 40.0,
    Nutrient.MAGNESIUM: 15.0,
    Nutrient.SULFUR: 10.0,
    Nutrient.IRON: 5.0,
    Nutrient.MANGANESE: 2.0,
    Nutrient.ZINC: 2.0,
    Nutrient.COPPER: 1.0,
    Nutrient.BORON: 1.0,
    Nutrient.MOLYBDENUM: 0.2,
}

DEFICIENCY_SYMPTOMS: dict[Nutrient, tuple[str, ...]] = {
    Nutrient.NITROGEN: ("yellowing leaves", "stunted growth"),
    Nutrient.PHOSPHORUS: ("purple leaves", "poor root development"),
    Nutrient.POTASSIUM: ("leaf edge browning", "weak stems"),
    Nutrient.CALCIUM: ("blossom end rot", "leaf curling"),
    Nutrient.MAGNESIUM: ("interveinal chlorosis", "leaf yellowing"),
    Nutrient.SULFUR: ("yellow new growth", "stunted development"),
    Nutrient.IRON: ("interveinal chlorosis", "yellow young leaves"),
    Nutrient.MANGANESE: ("interveinal chlorosis", "brown spots"),
    Nutrient.ZINC: ("small leaves", "interveinal chlorosis"),
    Nutrient.COPPER: ("wilting", "leaf curling"),
    Nutrient.BORON: ("cracked stems", "poor fruit set"),
    Nutrient.MOLYBDENUM: ("nitrogen deficiency symptoms", "stunted growth"),
}

_MICRONUTRIENTS: dict[Nutrient, float] = {
    Nutrient.COPPER: 0.5,
    Nutrient.BORON: 0.5,
    Nutrient.MOLYBDENUM: 0.1,
}


def _recipe(n, p, k, ca, mg, s, fe, mn, zn) -> dict[Nutrient, float]:
    return {
        Nutrient.NITROGEN: n, Nutrient.PHOSPHORUS: p, Nutrient.POTASSIUM: k,
        Nutrient.CALCIUM: ca, Nutrient.MAGNESIUM: mg, Nutrient.SULFUR: s,
        Nutrient.IRON: fe, Nutrient.MANGANESE: mn, Nutrient.ZINC: zn,
        **_MICRONUTRIENTS,
    }


# Stage nutrient requirements (ppm).  Placeholder agronomy.
STAGE_NUTRIENT_TARGETS: dict[GrowthStage, dict[Nutrient, float]] = {
    GrowthStage.GERMINATION:   _recipe(100, 50, 100, 150, 50, 50, 2, 1, 1),
    GrowthStage.SEEDLING:      _recipe(150, 75, 150, 200, 75, 75, 3, 1.5, 1.5),
    GrowthStage.VEGETATIVE:    _recipe(200, 100, 200, 250, 100, 100, 4, 2, 2),
    GrowthStage.FLOWERING:     _recipe(180, 150, 250, 250, 100, 100, 4, 2, 2),
    GrowthStage.FRUITING:      _recipe(150, 120, 300, 250, 100, 100, 4, 2, 2),
    GrowthStage.HARVEST_READY: _recipe(100, 100, 250, 250, 100, 100, 4, 2, 2),
    GrowthStage.POST_HARVEST:  _recipe(100, 50, 100, 150, 50, 50, 2, 1, 1),
}

EC_BOUNDS = (0.5, 2.5)
MAX_PH_STEP = 1.0


@dataclass(frozen=True)
class WaterQuality:
    """Nutrient-solution readings; any value may be absent."""

    ph: Optional[float] = None
    ec: Optional[float] = None
    temperature: Optional[float] = None
    dissolved_oxygen: Optional[float] = None
    alkalinity: Optional[float] = None


@dataclass(frozen=True)
class NutrientAdjustment:
    """One per-nutrient change.

    Attributes:
        nutrient:  Which nutrient.
        action:    Increase or decrease.
        amount:    Change in ppm (never more than the nutrient's max step).
        priority:  Urgency tier.
        reasoning: Explanation, including any matched deficiency symptom.
    """

    nutrient: Nutrient
    action: ControlAction
    amount: float
    priority: Priority
    reasoning: str


@dataclass(frozen=True)
class NutrientAdvice:
    """Output of ``optimize_nutrients()``.

    Attributes:
        adjustments:       Per-nutrient changes, most urgent first.
        recipe:            Levels after applying every adjustment.
        ph_adjustment:     Signed pH change, within ±1.
        ec_target:         Target EC in mS/cm, within 0.5–2.5.
        confidence:        0.3–1.0.
        recommendations:   Priority-ordered guidance.
        next_check_days:   Days until the next nutrient check.
    """

    adjustments: tuple[NutrientAdjustment, ...]
    recipe: dict[Nutrient, float]
    ph_adjustment: float
    ec_target: float
    confidence: float
    recommendations: tuple[str, ...]
    next_check_days: int


def parse_levels(levels: Mapping[str, Any]) -> dict[Nutrient, float]:
    """Keep recognized nutrients with finite, non-negative values."""
    parsed: dict[Nutrient, float] = {}
    for key, raw in levels.items():
        try:
            nutrient = Nutrient(str(key).strip().lower())
        except ValueError:
            logger.debug("Ignoring unknown nutrient %r", key)
            continue
        value = as_finite(raw)
        if value is not None and value >= 0:
            parsed[nutrient] = value
    return parsed


_ADJUSTMENT_TEMPLATE = "{nutrient} level {current:g} ppm {direction} target {target:g} ppm"

_PRIORITY_CASCADE = RuleCascade(
    rules=[
        Rule("severe", lambda c: c["severity"] > 3 or c["health"] < 50,
             RuleOutcome(Action.INTERVENE, Priority.CRITICAL, _ADJUSTMENT_TEMPLATE)),
        Rule("large", lambda c: c["severity"] > 2 or c["health"] < 70,
             RuleOutcome(Action.ADJUST, Priority.HIGH, _ADJUSTMENT_TEMPLATE)),
        Rule("moderate", lambda c: c["severity"] > 1.5,
             RuleOutcome(Action.ADJUST, Priority.MEDIUM, _ADJUSTMENT_TEMPLATE)),
    ],
    default=RuleOutcome(Action.ADJUST, Priority.LOW, _ADJUSTMENT_TEMPLATE),
)


def _evaluate_adjustment(
    nutrient: Nutrient, current: float, target: float, health_score: float
) -> CascadeResult:
    return _PRIORITY_CASCADE.evaluate({
        "nutrient": nutrient,
        "current": current,
        "target": target,
        "direction": "below" if current < target else "above",
        "severity": abs(current - target) / NUTRIENT_TOLERANCE[nutrient],
        "health": health_score,
    })


def adjustment_priority(nutrient: Nutrient, deviation: float, health_score: float) -> Priority:
    """Priority tier for a deviation of ``deviation`` ppm from target."""
    return _evaluate_adjustment(nutrient, deviation, 0.0, health_score).priority


def deficiency_symptom(nutrient: Nutrient, stress_indicators: Sequence[str]) -> Optional[str]:
    """First deficiency symptom of ``nutrient`` mentioned in any stress indicator."""
    indicators = [i.lower() for i in stress_indicators]
    for symptom in DEFICIENCY_SYMPTOMS[nutrient]:
        if any(symptom in indicator for indicator in indicators):
            return symptom
    return None


def analyze_nutrient(
    nutrient: Nutrient,
    current: float,
    target: float,
    health_score: float,
    stress_indicators: Sequence[str] = (),
) -> Optional[NutrientAdjustment]:
    """Adjustment for one nutrient, or ``None`` within tolerance."""
    deviation = abs(current - target)
    if deviation <= NUTRIENT_TOLERANCE[nutrient]:
        return None

    amount = min(deviation, MAX_ADJUSTMENT[nutrient])
    action = ControlAction.INCREASE if current < target else ControlAction.DECREASE
    outcome = _evaluate_adjustment(nutrient, current, target, health_score)
    priority, reasoning = outcome.priority, outcome.reasoning
    if deficiency_symptom(nutrient, stress_indicators):
        priority = Priority.CRITICAL
        reasoning = f"{reasoning} - {nutrient} deficiency symptoms detected"

    return NutrientAdjustment(nutrient, action, round(amount, 3), priority, reasoning)


def apply_adjustments(
    levels: Mapping[Nutrient, float],
    adjustments: Sequence[NutrientAdjustment],
) -> dict[Nutrient, float]:
    """Recipe after every adjustment; decreases never go below 0."""
    recipe = dict(levels)
    for adj in adjustments:
        current = recipe.get(adj.nutrient, 0.0)
        if adj.action == ControlAction.INCREASE:
            recipe[adj.nutrient] = round(current + adj.amount, 3)
        elif adj.action == ControlAction.DECREASE:
            recipe[adj.nutrient] = round(max(0.0, current - adj.amount), 3)
    return recipe


def target_ph(stage: Optional[GrowthStage]) -> float:
    return targets_for(stage)[SignalName.PH].optimal


def ph_adjustment(current_ph: Optional[float], stage: Optional[GrowthStage]) -> float:
    """Signed pH change toward the stage optimum, limited to ±1; 0.0 without a reading."""
    if current_ph is None:
        return 0.0
    return round(clamp(target_ph(stage) - current_ph, -MAX_PH_STEP, MAX_PH_STEP), 2)


def ec_target(stage: Optional[GrowthStage], health_score: float) -> float:
    base = targets_for(stage)[SignalName.EC].optimal
    if health_score < 60:
        base -= 0.2
    elif health_score > 90:
        base += 0.1
    return round(clamp(base, *EC_BOUNDS), 2)


def nutrient_confidence(health_score: float, water: WaterQuality) -> float:
    confidence = 0.8

    if health_score < 70:
        confidence -= 0.2
    if health_score < 50:
        confidence -= 0.3
    if health_score > 90:
        confidence += 0.1

    if water.ph is not None:
        if water.ph < 5.0 or water.ph > 7.5:
            confidence -= 0.2
        if 5.8 <= water.ph <= 6.2:
            confidence += 0.1
    if water.ec is not None:
        if water.ec < 0.5 or water.ec > 3.0:
            confidence -= 0.2
        if 1.0 <= water.ec <= 2.0:
            confidence += 0.1
    if water.temperature is not None and (water.temperature < 15 or water.temperature > 30):
        confidence -= 0.1

    return round(clamp(confidence, 0.3, 1.0), 4)


def next_check_days(health_score: float) -> int:
    if health_score < 60:
        return 1
    if health_score < 80:
        return 3
    return 7


def nutrient_recommendations(
    adjustments: Sequence[NutrientAdjustment],
    health_score: float,
    water: WaterQuality,
    stress_indicators: Sequence[str] = (),
) -> list[str]:
    recommendations: list[str] = []

    critical = [a for a in adjustments if a.priority == Priority.CRITICAL]
    if critical:
        recommendations.append("CRITICAL: Immediate nutrient adjustments required")
        recommendations.extend(f"- {a.reasoning}" for a in critical)

    high = [a for a in adjustments if a.priority == Priority.HIGH]
    if high:
        recommendations.append("High priority nutrient adjustments needed")
        recommendations.extend(f"- {a.reasoning}" for a in high)

    if water.ph is not None and (water.ph < 5.5 or water.ph > 6.5):
        recommendations.append(f"Adjust pH to optimal range (5.8-6.2) - current: {water.ph:g}")
    if water.ec is not None and (water.ec < 1.0 or water.ec > 2.0):
        recommendations.append(f"Adjust EC to optimal range (1.0-2.0) - current: {water.ec:g}")
    if water.temperature is not None and (water.temperature < 18 or water.temperature > 25):
        recommendations.append(
            f"Adjust water temperature to 18-25°C - current: {water.temperature:g}°C"
        )

    if health_score < 70:
        recommendations.append("Monitor plant health closely - consider reducing nutrient strength")
    if stress_indicators:
        recommendations.append("Address stress indicators before making major nutrient changes")
    if not adjustments:
        recommendations.append("Nutrient levels are optimal - maintain current recipe")

    return recommendations


def optimize_nutrients(
    levels: Mapping[str, Any],
    water: WaterQuality,
    health_score: float,
    stage: Optional[GrowthStage] = None,
    stress_indicators: Sequence[str] = (),
    targets: Optional[Mapping[str, Any]] = None,
) -> NutrientAdvice:
    """Nutrient adjustments, recipe and water targets for one plant.

    Args:
        levels:            Current nutrient levels in ppm, keyed by nutrient name.
        water:             Nutrient-solution readings.
        health_score:      Plant health, 0–100.
        stage:             Growth stage; selects requirements and pH/EC optima
                           (vegetative requirements when ``None``).
        stress_indicators: Free-text symptoms observed on the plant.
        targets:           Explicit requirements replacing the stage table.

    Returns:
        ``NutrientAdvice``.  Nutrients without a usable reading are skipped.
    """
    health = clamp(as_finite(health_score) or 0.0, 0.0, 100.0)
    current = parse_levels(levels)
    if targets is not None:
        requirements = parse_levels(targets)
    else:
        requirements = STAGE_NUTRIENT_TARGETS[stage or GrowthStage.VEGETATIVE]

    adjustments = [
        adj
        for nutrient in Nutrient
        if nutrient in current and nutrient in requirements
        if (adj := analyze_nutrient(
            nutrient, current[nutrient], requirements[nutrient], health, stress_indicators
        )) is not None
    ]
    adjustments.sort(key=lambda a: -a.priority.rank)

    return NutrientAdvice(
        adjustments=tuple(adjustments),
        recipe=apply_adjustments(current, adjustments),
        ph_adjustment=ph_adjustment(water.ph, stage),
        ec_target=ec_target(stage, health),
        confidence=nutrient_confidence(health, water),
        recommendations=tuple(
            nutrient_recommendations(adjustments, health, water, stress_indicators)
        ),
        next_check_days=next_check_days(health),
    )
