"""
Bounded history of past scoring calls, used for simple moving-average learning.

``HistoryBuffer`` is a fixed-capacity FIFO: once ``capacity`` samples are
held, each append evicts the oldest.  Appends and reads take a mutex, so one
buffer can be shared by concurrent scoring workers.

``learn_optimal()`` averages the readings of "healthy" samples (overall score
at or above a threshold) to suggest per-signal optima for a stage:

    < min_samples samples, or no healthy sample → static optima, confidence 0.5
    otherwise → mean of healthy readings, confidence = min(0.95, n_healthy / 100)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from berry_scorer.models.scoring import ScoringResult
from berry_scorer.taxonomy.enums import GrowthStage, SignalName
from berry_scorer.taxonomy.tables import targets_for
from berry_scorer.utils.numeric import mean

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.5
MAX_LEARNED_CONFIDENCE = 0.95


@dataclass(frozen=True)
class HistoricalSample:
    """One past scoring call: the clamped inputs and the result.

    Attributes:
        plant_id: Plant that was scored.
        stage:    Growth-stage context, or ``None`` for default.
        inputs:   ``{signal: clamped value}`` for every supplied signal.
        result:   The ``ScoringResult`` produced.
    """

    plant_id: str
    stage: Optional[GrowthStage]
    inputs: dict[SignalName, float] = field(hash=False)
    result: ScoringResult = field(hash=False)

    @classmethod
    def from_result(cls, result: ScoringResult) -> "HistoricalSample":
        return cls(
            plant_id=result.plant_id,
            stage=result.stage,
            inputs={sub.signal: sub.value for sub in result.sub_scores},
            result=result,
        )


@dataclass(frozen=True)
class LearnedOptimum:
    """Outcome of ``learn_optimal()``.

    Attributes:
        optima:      Suggested optimal value per signal.
        confidence:  0.5 for the static fallback, else ≤ 0.95.
        sample_size: Number of samples the suggestion is based on.
        learned:     False when the static fallback was returned.
    """

    optima: dict[SignalName, float]
    confidence: float
    sample_size: int
    learned: bool


class HistoryBuffer:
    """Fixed-capacity, thread-safe FIFO of ``HistoricalSample`` records.

    Args:
        capacity: Maximum number of samples retained (>= 1).
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}.")
        self._samples: deque[HistoricalSample] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: HistoricalSample) -> Optional[HistoricalSample]:
        """Add ``sample``; return the evicted oldest sample when the buffer was full."""
        with self._lock:
            evicted = self._samples[0] if len(self._samples) == self.capacity else None
            self._samples.append(sample)
        return evicted

    def samples(
        self,
        plant_id: Optional[str] = None,
        stage: Optional[GrowthStage] = None,
    ) -> list[HistoricalSample]:
        """Snapshot of retained samples, oldest first, optionally filtered."""
        with self._lock:
            snapshot = list(self._samples)
        if plant_id is not None:
            snapshot = [s for s in snapshot if s.plant_id == plant_id]
        if stage is not None:
            snapshot = [s for s in snapshot if s.stage == stage]
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def moving_average(
        self,
        signal: SignalName,
        window: Optional[int] = None,
        plant_id: Optional[str] = None,
    ) -> Optional[float]:
        """Mean of the last ``window`` readings of ``signal`` (all when ``None``).

        Returns ``None`` when no retained sample carries the signal.
        """
        values = [s.inputs[signal] for s in self.samples(plant_id=plant_id) if signal in s.inputs]
        if window is not None:
            if window < 1:
                raise ValueError(f"window must be >= 1, got {window}.")
            values = values[-window:]
        if not values:
            return None
        return mean(values)

    def score_moving_average(
        self,
        window: Optional[int] = None,
        plant_id: Optional[str] = None,
    ) -> Optional[float]:
        """Mean overall score of the last ``window`` samples."""
        scores = [s.result.overall_score for s in self.samples(plant_id=plant_id)]
        if window is not None:
            scores = scores[-window:]
        return mean(scores) if scores else None


def learn_optimal(
    history: HistoryBuffer,
    stage: Optional[GrowthStage] = None,
    min_samples: int = 10,
    healthy_threshold: float = 80.0,
) -> LearnedOptimum:
    """Suggest per-signal optima from healthy historical samples.

    Args:
        history:           Buffer to learn from.
        stage:             Restrict to samples scored in this stage context.
        min_samples:       Below this many samples, fall back to static optima.
        healthy_threshold: Minimum overall score for a sample to count as healthy.

    Returns:
        ``LearnedOptimum``; ``learned=False`` means the static table was used.
    """
    static = {signal: target.optimal for signal, target in targets_for(stage).items()}
    samples = history.samples(stage=stage)

    if len(samples) < min_samples:
        return LearnedOptimum(static, FALLBACK_CONFIDENCE, len(samples), learned=False)

    healthy = [s for s in samples if s.result.overall_score >= healthy_threshold]
    if not healthy:
        return LearnedOptimum(static, FALLBACK_CONFIDENCE, len(samples), learned=False)

    optima = dict(static)
    for signal in SignalName:
        values = [s.inputs[signal] for s in healthy if signal in s.inputs]
        if values:
            optima[signal] = round(mean(values), 2)

    confidence = min(MAX_LEARNED_CONFIDENCE, len(healthy) / 100)
    logger.debug(
        "Learned optima | stage=%s | healthy=%d/%d | confidence=%.2f",
        stage or "default", len(healthy), len(samples), confidence,
    )
    return LearnedOptimum(optima, confidence, len(healthy), learned=True)
