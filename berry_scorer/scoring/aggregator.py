"""
Aggregator: sub-scores + weight table → overall score and confidence.

Overall score
-------------
    overall = Σ(weight_i · score_i) / Σ(weight_i)      over signals present

Weights need not sum to 1, so scaling every weight by the same positive
constant leaves the overall score unchanged.  Signals with no reading do not
contribute to the score; they lower confidence instead.

Confidence
----------
    confidence = max_confidence
                 − out_of_band_penalty    · Σ min(1, excess_i / band_width_i)
                 − invalid_signal_penalty · (# readings clamped to physical bounds)
                 − incompleteness_penalty · (1 − completeness)

clamped to ``[min_confidence, max_confidence]``.  ``completeness`` is the
fraction of expected signals (those with a positive weight) that were
supplied.  Confidence is never 0 or 1 outright.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Sequence

from berry_scorer.config import ScoringConfig
from berry_scorer.errors import ConfigurationError
from berry_scorer.models.scoring import SubScore
from berry_scorer.taxonomy.enums import SignalName
from berry_scorer.utils.numeric import clamp

WeightTable = dict[SignalName, float]


def validate_weights(weights: Mapping[Any, Any], context: str = "weights") -> WeightTable:
    """Validate a weight table against the closed signal enum.

    Args:
        weights: Mapping of signal name (string or ``SignalName``) to weight.
        context: Label used in error messages (e.g. ``"weights.fruiting"``).

    Returns:
        A new ``{SignalName: float}`` table.

    Raises:
        ConfigurationError: On an unknown signal name, a non-numeric or
            non-finite weight, or a negative weight.
    """
    table: WeightTable = {}
    for key, raw in weights.items():
        signal = key if isinstance(key, SignalName) else SignalName.parse(str(key))
        if signal is None:
            raise ConfigurationError(f"{context}.{key}", "unknown signal name.")
        if isinstance(raw, bool):
            raise ConfigurationError(f"{context}.{key}", f"weight must be a number, got {raw!r}.")
        try:
            weight = float(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"{context}.{key}", f"weight must be a number, got {raw!r}."
            ) from None
        if not math.isfinite(weight):
            raise ConfigurationError(f"{context}.{key}", "weight must be finite.")
        if weight < 0:
            raise ConfigurationError(f"{context}.{key}", f"weight must be >= 0, got {weight}.")
        table[signal] = weight
    return table


def aggregate(sub_scores: Sequence[SubScore], weights: Mapping[SignalName, float]) -> float:
    """Weighted mean of ``sub_scores`` normalized by the active weight sum.

    Raises:
        ConfigurationError: If the weights of the supplied signals sum to zero.
    """
    if not sub_scores:
        return 0.0
    total_weight = sum(weights.get(sub.signal, 0.0) for sub in sub_scores)
    if total_weight <= 0.0:
        active = ", ".join(sorted(sub.signal.value for sub in sub_scores))
        raise ConfigurationError(
            "weights", f"weights sum to zero for the active signal set ({active})."
        )
    weighted = sum(weights.get(sub.signal, 0.0) * sub.score for sub in sub_scores)
    return weighted / total_weight


def expected_signals(weights: Mapping[SignalName, float]) -> list[SignalName]:
    """Signals a complete request should carry: every positively weighted one."""
    return [signal for signal in SignalName if weights.get(signal, 0.0) > 0.0]


def data_completeness(present: Iterable[SignalName], weights: Mapping[SignalName, float]) -> float:
    """Fraction of expected signals actually supplied (1.0 when none are expected)."""
    expected = expected_signals(weights)
    if not expected:
        return 1.0
    supplied = set(present)
    return sum(1 for signal in expected if signal in supplied) / len(expected)


def out_of_band_factor(sub: SubScore) -> float:
    """How far a reading lies outside its band, as a 0–1 fraction of band width."""
    if sub.in_band:
        return 0.0
    excess = sub.target_min - sub.value if sub.value < sub.target_min else sub.value - sub.target_max
    width = sub.target_max - sub.target_min
    if width <= 0:
        return 1.0
    return min(1.0, excess / width)


def compute_confidence(
    sub_scores: Sequence[SubScore],
    completeness: float,
    settings: ScoringConfig,
) -> float:
    """Confidence for one scoring call, clamped to the configured band.

    Args:
        sub_scores:   Sub-scores of the signals that were supplied.
        completeness: Output of ``data_completeness()``.
        settings:     Penalties and confidence band.

    Returns:
        Confidence in ``[settings.min_confidence, settings.max_confidence]``.
    """
    if not sub_scores:
        return settings.min_confidence

    confidence = settings.max_confidence
    confidence -= settings.out_of_band_penalty * sum(out_of_band_factor(s) for s in sub_scores)
    confidence -= settings.invalid_signal_penalty * sum(1 for s in sub_scores if not s.valid)
    confidence -= settings.incompleteness_penalty * (1.0 - clamp(completeness, 0.0, 1.0))

    return round(clamp(confidence, settings.min_confidence, settings.max_confidence), 4)
