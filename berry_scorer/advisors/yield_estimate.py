"""
Yield estimate: berry count × multiplicative condition factors.

    expected_g = berry_count · 8 g · stage_base
                 · environment · health · stage

Each environmental factor is banded: inside the optimal band it is 1.0,
inside a wider tolerable band it drops, outside both it takes a floor value::

    temperature   18–24 → 1.0   15–27 → 0.9   12–30 → 0.7   else 0.5
    humidity      60–80 → 1.0   50–90 → 0.9                 else 0.7
    soil moisture 70–85 → 1.0   60–95 → 0.8                 else 0.6
    pH           5.5–6.5 → 1.0  5.0–7.0 → 0.9               else 0.7

N:P:K balance contributes ``max(0.5, 1 − mean |ratio − 1/3|)``.

A missing reading leaves its factor at 1.0 and lowers confidence by 0.1.
``yield_range`` widens with uncertainty: ``expected · (1 ± (1 − confidence))``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from berry_scorer.taxonomy.enums import GrowthStage, SignalName, Trend
from berry_scorer.utils.numeric import as_finite, clamp, mean, recent_shift

GRAMS_PER_BERRY = 8.0
MISSING_READING_PENALTY = 0.1
TREND_THRESHOLD_G = 10.0
LOW_YIELD_G = 50.0
HIGH_YIELD_G = 100.0

Band = tuple[tuple[float, float], float]

TEMPERATURE_BANDS: tuple[Band, ...] = (((18.0, 24.0), 1.0), ((15.0, 27.0), 0.9), ((12.0, 30.0), 0.7))
HUMIDITY_BANDS: tuple[Band, ...] = (((60.0, 80.0), 1.0), ((50.0, 90.0), 0.9))
SOIL_MOISTURE_BANDS: tuple[Band, ...] = (((70.0, 85.0), 1.0), ((60.0, 95.0), 0.8))
PH_BANDS: tuple[Band, ...] = (((5.5, 6.5), 1.0), ((5.0, 7.0), 0.9))

_ENVIRONMENT_FACTORS: dict[SignalName, tuple[tuple[Band, ...], float]] = {
    SignalName.TEMPERATURE:   (TEMPERATURE_BANDS, 0.5),
    SignalName.HUMIDITY:      (HUMIDITY_BANDS, 0.7),
    SignalName.SOIL_MOISTURE: (SOIL_MOISTURE_BANDS, 0.6),
    SignalName.PH:            (PH_BANDS, 0.7),
}

# Share of berries counted toward harvestable weight at each stage.
STAGE_BASE_MULTIPLIER: dict[GrowthStage, float] = {
    GrowthStage.FLOWERING: 0.1,
    GrowthStage.FRUITING: 0.6,
    GrowthStage.HARVEST_READY: 1.0,
}

STAGE_MULTIPLIER: dict[GrowthStage, float] = {
    GrowthStage.VEGETATIVE: 0.1,
    GrowthStage.FLOWERING: 0.3,
    GrowthStage.FRUITING: 0.8,
    GrowthStage.HARVEST_READY: 1.0,
}

DAYS_TO_HARVEST: dict[GrowthStage, int] = {
    GrowthStage.GERMINATION: 120,
    GrowthStage.SEEDLING: 100,
    GrowthStage.VEGETATIVE: 80,
    GrowthStage.FLOWERING: 60,
    GrowthStage.FRUITING: 30,
    GrowthStage.HARVEST_READY: 7,
    GrowthStage.POST_HARVEST: 0,
}

_HEALTH_MULTIPLIERS: tuple[tuple[float, float], ...] = (
    (90.0, 1.0), (80.0, 0.95), (70.0, 0.9), (60.0, 0.8), (50.0, 0.7),
)


@dataclass(frozen=True)
class YieldConditions:
    """Environmental readings used by the yield estimate; any may be absent."""

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_moisture: Optional[float] = None
    ph: Optional[float] = None
    nitrogen: Optional[float] = None
    phosphorus: Optional[float] = None
    potassium: Optional[float] = None

    @classmethod
    def from_inputs(
        cls,
        signals: Mapping[str, Any],
        nutrients: Optional[Mapping[str, Any]] = None,
    ) -> "YieldConditions":
        values: dict[SignalName, float] = {}
        for key, raw in signals.items():
            signal = SignalName.parse(key)
            value = as_finite(raw)
            if signal is not None and value is not None:
                values.setdefault(signal, value)
        nutrients = {str(k).lower(): v for k, v in (nutrients or {}).items()}
        return cls(
            temperature=values.get(SignalName.TEMPERATURE),
            humidity=values.get(SignalName.HUMIDITY),
            soil_moisture=values.get(SignalName.SOIL_MOISTURE),
            ph=values.get(SignalName.PH),
            nitrogen=as_finite(nutrients.get("nitrogen")),
            phosphorus=as_finite(nutrients.get("phosphorus")),
            potassium=as_finite(nutrients.get("potassium")),
        )

    def get(self, signal: SignalName) -> Optional[float]:
        return getattr(self, signal.value, None)


@dataclass(frozen=True)
class YieldEstimate:
    """Expected harvest for one plant.

    Attributes:
        expected_yield_g: Expected grams per plant.
        confidence:       0.3–1.0.
        yield_range:      ``(min_g, max_g)``.
        days_to_harvest:  Estimated days until harvest from the current stage.
        positive_factors: Conditions helping yield.
        negative_factors: Conditions hurting yield.
        recommendations:  Guidance derived from the negative factors.
    """

    expected_yield_g: float
    confidence: float
    yield_range: tuple[float, float]
    days_to_harvest: int
    positive_factors: tuple[str, ...]
    negative_factors: tuple[str, ...]
    recommendations: tuple[str, ...]


def banded_multiplier(value: float, bands: Sequence[Band], floor: float) -> float:
    """Multiplier of the first band containing ``value``, else ``floor``."""
    for (lo, hi), multiplier in bands:
        if lo <= value <= hi:
            return multiplier
    return floor


def nutrient_balance(nitrogen: float, phosphorus: float, potassium: float) -> float:
    """N:P:K balance against an even 1:1:1 split, 0.5–1.0."""
    total = nitrogen + phosphorus + potassium
    if total <= 0:
        return 0.5
    ideal = 1.0 / 3.0
    deviation = mean([abs(n / total - ideal) for n in (nitrogen, phosphorus, potassium)])
    return max(0.5, 1.0 - deviation)


def environmental_multiplier(conditions: YieldConditions) -> float:
    multiplier = 1.0
    for signal, (bands, floor) in _ENVIRONMENT_FACTORS.items():
        value = conditions.get(signal)
        if value is not None:
            multiplier *= banded_multiplier(value, bands, floor)
    npk = (conditions.nitrogen, conditions.phosphorus, conditions.potassium)
    if all(v is not None for v in npk):
        multiplier *= nutrient_balance(*npk)
    return multiplier


def health_multiplier(health_score: float) -> float:
    for threshold, multiplier in _HEALTH_MULTIPLIERS:
        if health_score >= threshold:
            return multiplier
    return 0.5


def yield_confidence(conditions: YieldConditions, health_score: float) -> float:
    confidence = 0.8
    temp, humidity, moisture = conditions.temperature, conditions.humidity, conditions.soil_moisture

    if temp is None:
        confidence -= MISSING_READING_PENALTY
    elif temp < 15 or temp > 30:
        confidence -= 0.2
    elif 18 <= temp <= 24:
        confidence += 0.1

    if humidity is None:
        confidence -= MISSING_READING_PENALTY
    elif humidity < 50 or humidity > 90:
        confidence -= 0.1
    elif 60 <= humidity <= 80:
        confidence += 0.1

    if moisture is None:
        confidence -= MISSING_READING_PENALTY
    elif moisture < 60 or moisture > 95:
        confidence -= 0.1
    elif 70 <= moisture <= 85:
        confidence += 0.1

    if health_score < 70:
        confidence -= 0.2
    if health_score < 50:
        confidence -= 0.3

    return round(clamp(confidence, 0.3, 1.0), 4)


def analyze_factors(
    conditions: YieldConditions,
    health_score: float,
    stage: Optional[GrowthStage],
) -> tuple[list[str], list[str]]:
    """``(positive, negative)`` factor labels."""
    positive: list[str] = []
    negative: list[str] = []
    temp, humidity = conditions.temperature, conditions.humidity
    moisture, ph = conditions.soil_moisture, conditions.ph

    if temp is not None:
        if 18 <= temp <= 24:
            positive.append("Optimal temperature range")
        elif temp < 15 or temp > 30:
            negative.append("Temperature outside optimal range")
    if humidity is not None:
        if 60 <= humidity <= 80:
            positive.append("Optimal humidity levels")
        elif humidity < 50 or humidity > 90:
            negative.append("Humidity outside optimal range")
    if moisture is not None:
        if 70 <= moisture <= 85:
            positive.append("Optimal soil moisture")
        elif moisture < 60 or moisture > 95:
            negative.append("Soil moisture outside optimal range")
    if ph is not None:
        if 5.5 <= ph <= 6.5:
            positive.append("Optimal soil pH")
        else:
            negative.append("Soil pH outside optimal range")

    if health_score >= 80:
        positive.append("Excellent plant health")
    elif health_score < 60:
        negative.append("Poor plant health detected")

    if stage in (GrowthStage.FRUITING, GrowthStage.HARVEST_READY):
        positive.append("Optimal growth stage for yield")
    elif stage in (GrowthStage.GERMINATION, GrowthStage.SEEDLING, None):
        negative.append("Early or unknown growth stage - yield prediction uncertain")

    return positive, negative


_FACTOR_RECOMMENDATIONS: dict[str, str] = {
    "Temperature outside optimal range": "Adjust temperature to 18-24°C for optimal yield",
    "Humidity outside optimal range": "Maintain humidity between 60-80%",
    "Soil moisture outside optimal range": "Adjust watering schedule to maintain 70-85% soil moisture",
    "Soil pH outside optimal range": "Adjust soil pH to 5.5-6.5 for optimal nutrient uptake",
    "Poor plant health detected": "Address plant health issues before harvest",
}


def yield_recommendations(negative: Sequence[str], expected_yield_g: float) -> list[str]:
    recommendations = [_FACTOR_RECOMMENDATIONS[f] for f in negative if f in _FACTOR_RECOMMENDATIONS]
    if expected_yield_g < LOW_YIELD_G:
        recommendations.append("Consider additional fertilization to improve yield")
        recommendations.append("Optimize environmental conditions for better growth")
    elif expected_yield_g > HIGH_YIELD_G:
        recommendations.append("Excellent yield potential - maintain current conditions")
    return recommendations


def estimate_yield(
    berry_count: Any,
    stage: Optional[GrowthStage],
    health_score: float,
    conditions: YieldConditions,
) -> YieldEstimate:
    """Expected yield for one plant.

    Args:
        berry_count:  Counted berries (flowers at the flowering stage).
        stage:        Current growth stage; ``None`` yields 0 g.
        health_score: Plant health, 0–100.
        conditions:   Environmental and N/P/K readings.
    """
    count = max(0.0, as_finite(berry_count) or 0.0)
    health = clamp(as_finite(health_score) or 0.0, 0.0, 100.0)

    base = count * GRAMS_PER_BERRY * STAGE_BASE_MULTIPLIER.get(stage, 0.0)
    expected = (
        base
        * environmental_multiplier(conditions)
        * health_multiplier(health)
        * STAGE_MULTIPLIER.get(stage, 0.0)
    )
    confidence = yield_confidence(conditions, health)
    spread = expected * (1.0 - confidence)
    positive, negative = analyze_factors(conditions, health, stage)

    return YieldEstimate(
        expected_yield_g=round(expected, 2),
        confidence=confidence,
        yield_range=(round(max(0.0, expected - spread), 2), round(expected + spread, 2)),
        days_to_harvest=DAYS_TO_HARVEST.get(stage, 0) if stage is not None else 0,
        positive_factors=tuple(positive),
        negative_factors=tuple(negative),
        recommendations=tuple(yield_recommendations(negative, expected)),
    )


# ── Historical trend ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HarvestRecord:
    """One recorded harvest; ``month`` is 1–12."""

    plant_id: str
    month: int
    actual_yield_g: float


@dataclass(frozen=True)
class YieldTrend:
    average_yield_g: float
    trend: Trend
    seasonal_pattern: bool
    recommendations: tuple[str, ...]


def detect_seasonal_pattern(records: Sequence[HarvestRecord]) -> bool:
    """True when monthly mean yields vary by more than 10% of their mean (>= 3 months)."""
    by_month: dict[int, list[float]] = {}
    for record in records:
        by_month.setdefault(record.month, []).append(record.actual_yield_g)
    if len(by_month) < 3:
        return False
    monthly = [mean(v) for v in by_month.values()]
    overall = mean(monthly)
    variance = mean([(m - overall) ** 2 for m in monthly])
    return variance > overall * 0.1


def yield_trends(records: Sequence[HarvestRecord], plant_id: Optional[str] = None) -> YieldTrend:
    """Trend of recorded yields: last three harvests against the earlier ones."""
    selected = [r for r in records if plant_id is None or r.plant_id == plant_id]
    if len(selected) < 3:
        return YieldTrend(0.0, Trend.STABLE, False, ("Insufficient historical data for trend analysis",))

    yields = [r.actual_yield_g for r in selected]
    average = mean(yields)
    shift = recent_shift(yields)
    trend = Trend.STABLE
    if shift is not None and shift > TREND_THRESHOLD_G:
        trend = Trend.IMPROVING
    elif shift is not None and shift < -TREND_THRESHOLD_G:
        trend = Trend.DECLINING

    recommendations = {
        Trend.IMPROVING: ["Yield is improving - maintain current practices",
                          "Consider documenting successful techniques"],
        Trend.STABLE: ["Yield is stable - consider optimization opportunities"],
        Trend.DECLINING: ["Yield is declining - investigate potential issues",
                          "Review environmental conditions and care practices"],
    }[trend]
    if average < LOW_YIELD_G:
        recommendations.append("Average yield below target - implement improvement plan")

    return YieldTrend(
        average_yield_g=round(average, 2),
        trend=trend,
        seasonal_pattern=detect_seasonal_pattern(selected),
        recommendations=tuple(recommendations),
    )
