"""
Per-plant assessment: scoring engine + every advisor → one combined report.

Flow for one plant
------------------
  1. Validate the plant identifier (``InvalidInputError`` before any work).
  2. Analyse the growth stage from days since planting, when supplied.  A
     request without a stage is scored in the classified stage's context.
  3. Score the request with the engine.
  4. Run the advisors.  Health uses the supplied health score, else the
     overall score.  Quality runs only for fruiting/harvest-ready plants
     with berry metrics.
  5. Derive overall recommendations, alerts and next actions.

``assess_plants()`` runs independent plants on a thread pool.  Errors from
any plant propagate; nothing is swallowed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields, is_dataclass
from enum import Enum, StrEnum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from berry_scorer.advisors.climate import ClimateAdvice, ClimateReadings, optimize_climate
from berry_scorer.advisors.health import HealthAnalysis, analyze_health
from berry_scorer.advisors.nutrients import NutrientAdvice, WaterQuality, optimize_nutrients
from berry_scorer.advisors.quality import BerryMetrics, HarvestTiming, QualityAssessment, assess_quality
from berry_scorer.advisors.yield_estimate import YieldConditions, YieldEstimate, estimate_yield
from berry_scorer.models.scoring import ScoringRequest, ScoringResult, require_plant_id
from berry_scorer.scoring.engine import RequestLike, ScoringEngine
from berry_scorer.stages.growth import GrowthStageAnalysis, analyze_growth_stage
from berry_scorer.taxonomy.enums import GrowthStage, Priority, SignalName
from berry_scorer.utils.numeric import as_finite

logger = logging.getLogger(__name__)

LOW_YIELD_G = 50.0
_QUALITY_STAGES = (GrowthStage.FRUITING, GrowthStage.HARVEST_READY)


class PlantContext(BaseModel):
    """Plant facts the advisors need beyond the sensor signals.

    Attributes:
        days_since_planting: Plant age in days; drives stage analysis.
        berry_count:         Counted berries (or flowers).
        health_score:        Externally assessed health, 0–100; the overall
                             score is used when absent.
        time_of_day:         Hour of day (0–24) for the light schedule.
        nutrients:           Nutrient levels in ppm by nutrient name.
        stress_indicators:   Observed symptoms, free text.
        berry_metrics:       Berry measurements for quality grading.
        water_temperature:   Nutrient-solution temperature, °C.
    """

    model_config = ConfigDict(frozen=True)

    days_since_planting: Optional[float] = None
    berry_count: float = 0.0
    health_score: Optional[float] = None
    time_of_day: float = 12.0
    nutrients: dict[str, float] = {}
    stress_indicators: tuple[str, ...] = ()
    berry_metrics: Optional[dict[str, float]] = None
    water_temperature: Optional[float] = None

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, v: float) -> float:
        if not 0.0 <= v <= 24.0:
            raise ValueError(f"time_of_day must be in [0, 24], got {v}.")
        return v


class AlertKind(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ActionKind(StrEnum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    MONITORING = "monitoring"


@dataclass(frozen=True)
class Alert:
    id: str
    kind: AlertKind
    message: str
    priority: Priority


@dataclass(frozen=True)
class NextAction:
    """Follow-up task; ``due_in_days`` is 0 for immediate actions."""

    id: str
    kind: ActionKind
    description: str
    priority: Priority
    due_in_days: int


@dataclass(frozen=True)
class PlantAssessment:
    """Combined report for one plant."""

    plant_id: str
    scoring: ScoringResult
    health: HealthAnalysis
    growth: Optional[GrowthStageAnalysis]
    climate: ClimateAdvice
    nutrients: NutrientAdvice
    yield_estimate: YieldEstimate
    quality: Optional[QualityAssessment]
    recommendations: tuple[str, ...]
    alerts: tuple[Alert, ...]
    next_actions: tuple[NextAction, ...]

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation of the whole report."""
        return _jsonable(self)


def assess_plant(
    engine: ScoringEngine,
    request: RequestLike,
    context: Optional[PlantContext] = None,
) -> PlantAssessment:
    """Score one plant and run every advisor on it.

    Raises:
        InvalidInputError: If the plant identifier is missing.
        ConfigurationError: If the request's weights are invalid.
    """
    request = _as_request(request)
    context = context or PlantContext()
    plant_id = require_plant_id(request.plant_id)

    growth = None
    if context.days_since_planting is not None:
        growth = analyze_growth_stage(
            context.days_since_planting, cyclic=engine.config.scoring.cyclic_stages
        )
        if request.stage is None:
            request = request.model_copy(update={"stage": growth.stage.value})

    scoring = engine.score(request)
    stage = scoring.stage
    health_input = context.health_score if context.health_score is not None else scoring.overall_score
    health = analyze_health(health_input)
    health_score = health.health_score if health.health_score is not None else scoring.overall_score

    climate = optimize_climate(
        ClimateReadings.from_signals(request.signals),
        health_score=health_score,
        time_of_day=context.time_of_day,
        stage=stage,
        targets=engine.context_for(stage).targets,
    )
    nutrients = optimize_nutrients(
        context.nutrients,
        _water_quality(request, context),
        health_score=health_score,
        stage=stage,
        stress_indicators=context.stress_indicators,
    )
    yield_est = estimate_yield(
        context.berry_count,
        stage,
        health_score,
        YieldConditions.from_inputs(request.signals, context.nutrients),
    )
    quality = None
    if stage in _QUALITY_STAGES and context.berry_metrics:
        quality = assess_quality(BerryMetrics.from_mapping(context.berry_metrics))

    assessment = PlantAssessment(
        plant_id=plant_id,
        scoring=scoring,
        health=health,
        growth=growth,
        climate=climate,
        nutrients=nutrients,
        yield_estimate=yield_est,
        quality=quality,
        recommendations=tuple(overall_recommendations(
            scoring, health, growth, climate, nutrients, yield_est, quality
        )),
        alerts=tuple(build_alerts(plant_id, scoring, health, climate, nutrients, quality)),
        next_actions=tuple(build_next_actions(plant_id, health, climate, nutrients)),
    )
    logger.info(
        "Assessed plant [%s] | stage=%s | health=%s | alerts=%d | actions=%d",
        plant_id, stage or "default", health.classification,
        len(assessment.alerts), len(assessment.next_actions),
        extra={"plant_id": plant_id, "stage": str(stage or "default")},
    )
    return assessment


def assess_plants(
    engine: ScoringEngine,
    plants: Sequence[tuple[RequestLike, Optional[PlantContext]]],
    max_workers: Optional[int] = None,
) -> list[PlantAssessment]:
    """Assess several plants concurrently, preserving input order.

    Every plant identifier is validated before any plant is assessed.
    """
    prepared = [(_as_request(request), context) for request, context in plants]
    for request, _ in prepared:
        require_plant_id(request.plant_id)
    if not prepared:
        return []
    workers = max_workers or engine.config.scoring.max_workers
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda item: assess_plant(engine, *item), prepared))


# ── Report assembly ───────────────────────────────────────────────────────────


def overall_recommendations(
    scoring: ScoringResult,
    health: HealthAnalysis,
    growth: Optional[GrowthStageAnalysis],
    climate: ClimateAdvice,
    nutrients: NutrientAdvice,
    yield_est: YieldEstimate,
    quality: Optional[QualityAssessment],
) -> list[str]:
    """Cross-advisor guidance, most urgent first."""
    recommendations: list[str] = [scoring.rationale[0]]

    if health.severity == Priority.CRITICAL:
        recommendations.append("URGENT: Plant health critical - immediate intervention required")
    elif health.severity == Priority.HIGH:
        recommendations.append("Plant health needs attention - implement recommended actions")

    if any(c.priority == Priority.CRITICAL for c in climate.commands):
        recommendations.append("Critical climate adjustments needed - implement immediately")
    if any(a.priority == Priority.CRITICAL for a in nutrients.adjustments):
        recommendations.append("Critical nutrient adjustments required - implement immediately")

    if growth is not None and growth.is_transitioning and growth.next_stage is not None:
        recommendations.append(
            f"Plant transitioning to {growth.next_stage} stage - adjust care routine"
        )

    if quality is not None:
        if quality.harvest_timing == HarvestTiming.HARVEST_NOW:
            recommendations.append("Berries ready for harvest - schedule immediate harvest")
        elif quality.harvest_timing == HarvestTiming.WAIT_1_2_DAYS:
            recommendations.append("Berries nearly ready - prepare for harvest in 1-2 days")

    if scoring.stage in _QUALITY_STAGES and yield_est.expected_yield_g < LOW_YIELD_G:
        recommendations.append("Low yield prediction - review growing conditions and care practices")

    return recommendations


def build_alerts(
    plant_id: str,
    scoring: ScoringResult,
    health: HealthAnalysis,
    climate: ClimateAdvice,
    nutrients: NutrientAdvice,
    quality: Optional[QualityAssessment],
) -> list[Alert]:
    alerts: list[Alert] = []

    if scoring.priority == Priority.CRITICAL:
        alerts.append(Alert(
            f"score-critical-{plant_id}", AlertKind.CRITICAL,
            f"Critical plant score: {scoring.rationale[0]}", Priority.CRITICAL,
        ))
    if health.severity == Priority.CRITICAL:
        alerts.append(Alert(
            f"health-critical-{plant_id}", AlertKind.CRITICAL,
            f"Critical plant health issue: {health.classification}", Priority.CRITICAL,
        ))
    for i, command in enumerate(c for c in climate.commands if c.priority == Priority.CRITICAL):
        alerts.append(Alert(
            f"climate-critical-{plant_id}-{i}", AlertKind.CRITICAL,
            f"Critical climate issue: {command.reasoning}", Priority.CRITICAL,
        ))
    for i, adj in enumerate(a for a in nutrients.adjustments if a.priority == Priority.CRITICAL):
        alerts.append(Alert(
            f"nutrient-critical-{plant_id}-{i}", AlertKind.CRITICAL,
            f"Critical nutrient issue: {adj.reasoning}", Priority.CRITICAL,
        ))
    if scoring.invalid_signals:
        names = ", ".join(s.value for s in scoring.invalid_signals)
        alerts.append(Alert(
            f"sensor-invalid-{plant_id}", AlertKind.WARNING,
            f"Implausible sensor readings: {names}", Priority.HIGH,
        ))
    if quality is not None and quality.harvest_timing == HarvestTiming.HARVEST_NOW:
        alerts.append(Alert(
            f"harvest-ready-{plant_id}", AlertKind.WARNING,
            "Berries ready for harvest", Priority.HIGH,
        ))
    return alerts


def build_next_actions(
    plant_id: str,
    health: HealthAnalysis,
    climate: ClimateAdvice,
    nutrients: NutrientAdvice,
) -> list[NextAction]:
    actions: list[NextAction] = []

    if health.severity == Priority.CRITICAL:
        actions.append(NextAction(
            f"health-action-{plant_id}", ActionKind.IMMEDIATE,
            "Address critical plant health issues", Priority.CRITICAL, 0,
        ))
    urgent = (Priority.HIGH, Priority.CRITICAL)
    for i, command in enumerate(c for c in climate.commands if c.priority in urgent):
        actions.append(NextAction(
            f"climate-action-{plant_id}-{i}", ActionKind.IMMEDIATE,
            f"Climate control: {command.reasoning}", command.priority, 0,
        ))
    for i, adj in enumerate(a for a in nutrients.adjustments if a.priority in urgent):
        actions.append(NextAction(
            f"nutrient-action-{plant_id}-{i}", ActionKind.IMMEDIATE,
            f"Nutrient adjustment: {adj.reasoning}", adj.priority, 0,
        ))
    actions.append(NextAction(
        f"nutrient-check-{plant_id}", ActionKind.SCHEDULED,
        "Nutrient solution check", Priority.MEDIUM, nutrients.next_check_days,
    ))
    actions.append(NextAction(
        f"monitoring-{plant_id}", ActionKind.MONITORING,
        "Daily plant monitoring and assessment", Priority.MEDIUM, 1,
    ))
    return actions


# ── Helpers ───────────────────────────────────────────────────────────────────


def _as_request(request: RequestLike) -> ScoringRequest:
    if isinstance(request, ScoringRequest):
        return request
    return ScoringRequest.from_mapping(request)


def _water_quality(request: ScoringRequest, context: PlantContext) -> WaterQuality:
    readings: dict[SignalName, float] = {}
    for key, raw in request.signals.items():
        signal = SignalName.parse(key)
        value = as_finite(raw)
        if signal in (SignalName.PH, SignalName.EC) and value is not None:
            readings.setdefault(signal, value)
    return WaterQuality(
        ph=readings.get(SignalName.PH),
        ec=readings.get(SignalName.EC),
        temperature=as_finite(context.water_temperature),
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
