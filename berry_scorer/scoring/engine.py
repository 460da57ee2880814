"""
Scoring engine: one request in, one ``ScoringResult`` out.

Pipeline for a single call
--------------------------
  1. Validate the plant identifier (``InvalidInputError`` before any work).
  2. Resolve the growth-stage context (unknown stage → default tables, noted).
  3. Pick the weight table: per-request weights replace the context table.
  4. Parse signals: unknown names are ignored, non-finite values count as missing.
  5. Normalize each present signal (signal order), aggregate, compute confidence.
  6. Run the score cascade → action + priority; grade the overall score.
  7. Build the ordered rationale and append the sample to history.

Score cascade (first match wins)
--------------------------------
    1. no_data          : no usable reading            → monitor   / high
    2. critical_overall : overall < 60                 → intervene / critical
    3. critical_signal  : worst sub-score < 40         → intervene / high
    4. below_target     : overall < 80                 → adjust    / medium
    5. invalid_readings : any reading clamped          → monitor   / medium
    6. minor_drift      : overall < 90 or worst < 70   → monitor   / low
    default             :                               → maintain  / low

The engine is constructed once via ``create_engine(config)``.  Weight tables
from config are validated at construction, so a bad table fails up front
rather than on the first scoring call.  Scoring itself is pure apart from the
mutex-protected history append, so ``score_many()`` fans requests out on a
thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from berry_scorer.config import AppConfig
from berry_scorer.errors import ConfigurationError
from berry_scorer.models.scoring import ScoringRequest, ScoringResult, SubScore, require_plant_id
from berry_scorer.scoring.aggregator import (
    WeightTable,
    aggregate,
    compute_confidence,
    data_completeness,
    expected_signals,
    validate_weights,
)
from berry_scorer.scoring.cascade import Rule, RuleCascade, RuleOutcome
from berry_scorer.scoring.history import HistoricalSample, HistoryBuffer, LearnedOptimum, learn_optimal
from berry_scorer.scoring.normalizer import normalize_signal
from berry_scorer.scoring.recommendations import (
    CRITICAL_SUB_SCORE,
    SIGNAL_LABELS,
    build_rationale,
    grade_for,
)
from berry_scorer.taxonomy.enums import Action, GrowthStage, Priority, SignalName
from berry_scorer.taxonomy.tables import PHYSICAL_BOUNDS, TargetRange, targets_for, weights_for
from berry_scorer.utils.numeric import as_finite

logger = logging.getLogger(__name__)

RequestLike = Union[ScoringRequest, Mapping[str, Any]]

DEFAULT_CONTEXT = "default"


def build_score_cascade() -> RuleCascade:
    """The plant-level cascade used by every ``ScoringEngine``."""
    return RuleCascade(
        rules=[
            Rule(
                "no_data",
                lambda c: c["signal_count"] == 0,
                RuleOutcome(
                    Action.MONITOR, Priority.HIGH,
                    "No usable signal readings for plant {plant_id}; check sensors before acting",
                ),
            ),
            Rule(
                "critical_overall",
                lambda c: c["overall_score"] < 60.0,
                RuleOutcome(
                    Action.INTERVENE, Priority.CRITICAL,
                    "Overall score {overall_score:.1f} is critically low; intervene immediately",
                ),
            ),
            Rule(
                "critical_signal",
                lambda c: c["worst_score"] < CRITICAL_SUB_SCORE,
                RuleOutcome(
                    Action.INTERVENE, Priority.HIGH,
                    "{worst_label} sub-score {worst_score:.1f} is critically low; correct it now",
                ),
            ),
            Rule(
                "below_target",
                lambda c: c["overall_score"] < 80.0,
                RuleOutcome(
                    Action.ADJUST, Priority.MEDIUM,
                    "Overall score {overall_score:.1f} is below target; adjust growing conditions",
                ),
            ),
            Rule(
                "invalid_readings",
                lambda c: c["invalid_count"] > 0,
                RuleOutcome(
                    Action.MONITOR, Priority.MEDIUM,
                    "{invalid_count} reading(s) outside physical sensor range; verify sensors",
                ),
            ),
            Rule(
                "minor_drift",
                lambda c: c["overall_score"] < 90.0 or c["worst_score"] < 70.0,
                RuleOutcome(
                    Action.MONITOR, Priority.LOW,
                    "Conditions acceptable (overall {overall_score:.1f}); "
                    "{worst_label} is furthest from optimal",
                ),
            ),
        ],
        default=RuleOutcome(
            Action.MAINTAIN, Priority.LOW,
            "All measured signals on target (overall {overall_score:.1f}); "
            "maintain current settings",
        ),
    )


@dataclass(frozen=True)
class ScoringContext:
    """Resolved tables for one growth-stage context.

    Attributes:
        stage:   Growth stage, or ``None`` for the default context.
        targets: Target range per signal.
        weights: Validated weight table.
    """

    stage: Optional[GrowthStage]
    targets: dict[SignalName, TargetRange]
    weights: WeightTable


class ScoringEngine:
    """Deterministic multi-factor scorer with a bounded sample history.

    Args:
        config:  Application config; defaults to ``AppConfig()``.
        history: Shared history buffer; one is created from
                 ``config.history.capacity`` when omitted.

    Raises:
        ConfigurationError: If a configured weight table is invalid.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        history: Optional[HistoryBuffer] = None,
    ) -> None:
        self._config = config or AppConfig()
        self._settings = self._config.scoring
        self._history = history if history is not None else HistoryBuffer(
            self._config.history.capacity
        )
        self._contexts = _build_contexts(self._config.weights)
        self._cascade = build_score_cascade()

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def history(self) -> HistoryBuffer:
        return self._history

    def context_for(self, stage: Optional[GrowthStage]) -> ScoringContext:
        """Resolved context for ``stage`` (``None`` = default context)."""
        return self._contexts[stage]

    # ── Scoring ───────────────────────────────────────────────────────────────

    def score(self, request: RequestLike) -> ScoringResult:
        """Score one request.

        Raises:
            InvalidInputError: If the plant identifier is missing or blank.
            ConfigurationError: If per-request weights are invalid, or the
                weights of the supplied signals sum to zero.
        """
        return self._score_validated(_prepare(request))

    def score_many(
        self,
        requests: Sequence[RequestLike],
        max_workers: Optional[int] = None,
    ) -> list[ScoringResult]:
        """Score several requests concurrently, preserving input order.

        Every request is validated before any is scored, so one missing plant
        identifier fails the whole batch without partial history writes.
        """
        prepared = [_prepare(r) for r in requests]
        if not prepared:
            return []
        workers = max_workers or self._settings.max_workers
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self._score_validated, prepared))

    def learned_optima(self, stage: Optional[GrowthStage] = None) -> LearnedOptimum:
        """Moving-average optima for ``stage`` from this engine's history."""
        return learn_optimal(
            self._history,
            stage=stage,
            min_samples=self._config.history.min_samples_to_learn,
            healthy_threshold=self._config.history.healthy_score_threshold,
        )

    def _score_validated(self, request: ScoringRequest) -> ScoringResult:
        plant_id = require_plant_id(request.plant_id)
        settings = self._settings

        stage = GrowthStage.parse(request.stage)
        stage_note = None
        if request.stage and stage is None:
            stage_note = f"Unknown growth stage '{request.stage}'; default ranges applied"
            logger.warning("Unknown growth stage %r for plant %s", request.stage, plant_id)
        context = self._contexts[stage]

        if request.weights is not None:
            weights = validate_weights(request.weights, context="request.weights")
        else:
            weights = context.weights

        readings, ignored = _parse_signals(request.signals)
        if ignored:
            logger.debug("Ignoring unrecognized signals for plant %s: %s", plant_id, ignored)

        sub_scores: list[SubScore] = [
            normalize_signal(
                signal,
                readings[signal],
                context.targets[signal],
                PHYSICAL_BOUNDS[signal],
                tolerance_fraction=settings.tolerance_fraction,
                edge_score=settings.edge_score,
            )
            for signal in SignalName
            if signal in readings
        ]
        missing = [s for s in expected_signals(weights) if s not in readings]

        overall = round(aggregate(sub_scores, weights), 2)
        completeness = data_completeness(readings, weights)
        confidence = compute_confidence(sub_scores, completeness, settings)

        worst = min(sub_scores, key=lambda s: s.score, default=None)
        outcome = self._cascade.evaluate({
            "plant_id": plant_id,
            "overall_score": overall,
            "confidence": confidence,
            "signal_count": len(sub_scores),
            "invalid_count": sum(1 for s in sub_scores if not s.valid),
            "missing_count": len(missing),
            "worst_score": worst.score if worst else 0.0,
            "worst_label": SIGNAL_LABELS[worst.signal][0] if worst else "No signal",
        })

        rationale = build_rationale(
            outcome,
            sub_scores,
            missing=missing,
            ignored_signals=ignored,
            stage_note=stage_note,
            notes=request.notes,
        )

        result = ScoringResult(
            plant_id=plant_id,
            stage=stage,
            overall_score=overall,
            confidence=confidence,
            grade=grade_for(overall),
            action=Action(outcome.action),
            priority=outcome.priority,
            rationale=tuple(rationale),
            sub_scores=tuple(sub_scores),
            missing_signals=tuple(missing),
        )
        self._history.append(HistoricalSample.from_result(result))

        logger.info(
            "Scored plant [%s] | stage=%s | overall=%.2f | confidence=%.3f | rule=%s | action=%s",
            plant_id, stage or DEFAULT_CONTEXT, overall, confidence, outcome.rule, result.action,
            extra={"plant_id": plant_id, "stage": str(stage or DEFAULT_CONTEXT)},
        )
        return result


def create_engine(
    config: Optional[AppConfig] = None,
    history: Optional[HistoryBuffer] = None,
) -> ScoringEngine:
    """Construct a ready-to-use engine.

    Raises:
        ConfigurationError: If any configured weight table is invalid.
    """
    engine = ScoringEngine(config, history=history)
    logger.debug(
        "Scoring engine ready | history_capacity=%d | max_workers=%d",
        engine.history.capacity, engine.config.scoring.max_workers,
    )
    return engine


# ── Helpers ───────────────────────────────────────────────────────────────────


def _prepare(request: RequestLike) -> ScoringRequest:
    """Normalize input to a ``ScoringRequest`` with a validated plant id.

    Raises:
        InvalidInputError: If ``request`` is not a mapping or lacks a plant id.
    """
    if isinstance(request, ScoringRequest):
        require_plant_id(request.plant_id)
        return request
    return ScoringRequest.from_mapping(request)


def _parse_signals(signals: Mapping[str, Any]) -> tuple[dict[SignalName, float], list[str]]:
    """Split raw signals into usable readings and unrecognized names.

    Non-numeric or non-finite values are dropped, so the signal counts as
    missing.  When a signal appears under two aliases the first usable
    reading wins.
    """
    readings: dict[SignalName, float] = {}
    ignored: list[str] = []
    for key, raw in signals.items():
        signal = SignalName.parse(key)
        if signal is None:
            ignored.append(str(key))
            continue
        value = as_finite(raw)
        if value is None or signal in readings:
            continue
        readings[signal] = value
    return readings, ignored


def _build_contexts(
    overrides: Mapping[str, Mapping[str, Any]],
) -> dict[Optional[GrowthStage], ScoringContext]:
    """Resolve target and weight tables for every context.

    ``overrides["default"]`` is layered onto every context first, then any
    stage-specific override for that stage.
    """
    parsed: dict[Optional[GrowthStage], WeightTable] = {}
    for key, table in overrides.items():
        if key == DEFAULT_CONTEXT:
            stage = None
        else:
            stage = GrowthStage.parse(key)
            if stage is None:
                raise ConfigurationError(f"weights.{key}", "unknown scoring context.")
        if not isinstance(table, Mapping):
            raise ConfigurationError(f"weights.{key}", "expected a table of signal weights.")
        parsed[stage] = validate_weights(table, context=f"weights.{key}")

    contexts: dict[Optional[GrowthStage], ScoringContext] = {}
    for stage in (None, *GrowthStage):
        weights = weights_for(stage)
        weights.update(parsed.get(None, {}))
        if stage is not None:
            weights.update(parsed.get(stage, {}))
        if sum(weights.values()) <= 0.0:
            raise ConfigurationError(
                f"weights.{stage or DEFAULT_CONTEXT}", "weights sum to zero."
            )
        contexts[stage] = ScoringContext(stage=stage, targets=targets_for(stage), weights=weights)
    return contexts
