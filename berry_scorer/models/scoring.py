"""
Scoring request, sub-score and result models.

``ScoringRequest`` is the single input object: a plant identifier, an
optional growth-stage name, a flat ``{signal name → value}`` mapping and an
optional weight table.  Construction is lenient on purpose (signal values
may be junk, the stage may be unknown); the engine degrades on those and
raises only for a missing plant identifier.

``SubScore`` and ``ScoringResult`` are frozen.  A result is produced once per
scoring call and serializes to plain JSON-compatible data via ``to_dict()``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from berry_scorer.errors import ConfigurationError, InvalidInputError
from berry_scorer.taxonomy.enums import Action, Grade, GrowthStage, Priority, SignalName


class ScoringRequest(BaseModel):
    """One scoring call's input.

    Attributes:
        plant_id: Required identifier of the plant being scored.  Validated at
            the scoring-call boundary, not at construction.
        stage:    Growth-stage name, e.g. ``"fruiting"``; ``None`` selects the
            default context.
        signals:  Raw readings keyed by signal name (snake_case or camelCase).
        weights:  Optional full weight table replacing the context default.
        notes:    Input problems that were absorbed rather than raised; each
            becomes a rationale line.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plant_id: Optional[str] = Field(default=None, alias="plantId")
    stage: Optional[str] = None
    signals: dict[str, Any] = {}
    weights: Optional[dict[str, Any]] = None
    notes: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Any) -> "ScoringRequest":
        """Build a request from plain key-value data, checking the plant id first.

        Malformed optional fields degrade instead of raising: a non-string
        stage is kept as an (unknown) stage name, and a ``signals`` value that
        is not a mapping is dropped with a note carried into the rationale.

        Raises:
            InvalidInputError:  If ``data`` is not a mapping, or
                ``plant_id``/``plantId`` is absent or blank.
            ConfigurationError: If ``weights`` is present but not a mapping.
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError(
                "plant_id", f"Expected a request object, got {type(data).__name__}."
            )
        plant_id = data.get("plant_id", data.get("plantId"))
        require_plant_id(plant_id)

        stage = data.get("stage")
        if stage is not None and not isinstance(stage, str):
            stage = str(stage)

        notes: list[str] = []
        signals = data.get("signals") or {}
        if not isinstance(signals, Mapping):
            notes.append(
                f"Ignored malformed signals field ({type(signals).__name__}); "
                "expected name-value readings"
            )
            signals = {}

        weights = data.get("weights")
        if weights is not None and not isinstance(weights, Mapping):
            raise ConfigurationError(
                "request.weights",
                f"expected a table of signal weights, got {type(weights).__name__}.",
            )

        return cls(
            plant_id=str(plant_id).strip(),
            stage=stage,
            signals={str(k): v for k, v in signals.items()},
            weights=None if weights is None else {str(k): v for k, v in weights.items()},
            notes=tuple(notes),
        )


def require_plant_id(plant_id: Any) -> str:
    """Return the stripped plant id or raise ``InvalidInputError``."""
    if plant_id is None or not str(plant_id).strip():
        raise InvalidInputError("plant_id", "A plant identifier is required to score.")
    return str(plant_id).strip()


class SubScore(BaseModel):
    """Normalized contribution of one measured signal.

    Attributes:
        signal:         Which signal this is.
        raw_value:      Reading as supplied.
        value:          Reading after clamping to physical bounds.
        score:          0–100; 100 near optimal, 0 far outside the band.
        target_min:     Lower edge of the target band.
        target_optimal: Optimal value.
        target_max:     Upper edge of the target band.
        valid:          False when the raw reading was outside physical bounds.
    """

    model_config = ConfigDict(frozen=True)

    signal: SignalName
    raw_value: float
    value: float
    score: float
    target_min: float
    target_optimal: float
    target_max: float
    valid: bool = True

    @property
    def deviation(self) -> float:
        """Signed distance of the (clamped) value from optimal."""
        return self.value - self.target_optimal

    @property
    def in_band(self) -> bool:
        return self.target_min <= self.value <= self.target_max


class ScoringResult(BaseModel):
    """Output of one scoring call.

    Attributes:
        plant_id:        Plant that was scored.
        stage:           Growth-stage context used, or ``None`` for default.
        overall_score:   Weighted mean of sub-scores, 0–100.
        confidence:      Within the configured ``[min, max]`` confidence band.
        grade:           Letter grade for ``overall_score``.
        action:          Action chosen by the rule cascade.
        priority:        Urgency of ``action``.
        rationale:       Human-readable reasons, most urgent first.
        sub_scores:      Per-signal sub-scores in signal order.
        missing_signals: Expected (positively weighted) signals with no reading.
    """

    model_config = ConfigDict(frozen=True)

    plant_id: str
    stage: Optional[GrowthStage] = None
    overall_score: float
    confidence: float
    grade: Grade
    action: Action
    priority: Priority
    rationale: tuple[str, ...]
    sub_scores: tuple[SubScore, ...] = ()
    missing_signals: tuple[SignalName, ...] = ()

    @property
    def invalid_signals(self) -> tuple[SignalName, ...]:
        return tuple(s.signal for s in self.sub_scores if not s.valid)

    def sub_score(self, signal: SignalName) -> Optional[SubScore]:
        for sub in self.sub_scores:
            if sub.signal == signal:
                return sub
        return None

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation (enums as strings, tuples as lists)."""
        return self.model_dump(mode="json")
