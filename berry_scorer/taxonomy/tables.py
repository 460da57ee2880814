"""
Static range and weight tables for every growth-stage context.

Three tables describe each signal:
  - target range ``{min, optimal, max}``: where the plant is comfortable.
  - physical bounds ``(low, high)``: what a working sensor can report.
    Readings outside are clamped and flagged invalid, never raised.
  - weight: relative importance in the overall score.

The "default" context (no stage supplied) uses ``DEFAULT_TARGETS`` and
``DEFAULT_WEIGHTS`` directly.  Stage contexts start from the defaults and
apply the stage overrides.

These numbers are placeholder agronomy.  They are configuration, not
calibrated science; supply real values from a domain expert before relying
on the output.

This module has NO imports from any other ``berry_scorer`` package apart from
the sibling enums module.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from berry_scorer.taxonomy.enums import GrowthStage, SignalName


@dataclass(frozen=True)
class TargetRange:
    """Comfortable band for one signal.

    Attributes:
        min:     Lower edge of the band.
        optimal: Ideal value; full sub-score near it.
        max:     Upper edge of the band.
    """

    min: float
    optimal: float
    max: float

    def __post_init__(self) -> None:
        if not self.min <= self.optimal <= self.max:
            raise ValueError(
                f"TargetRange requires min <= optimal <= max, got "
                f"({self.min}, {self.optimal}, {self.max})."
            )

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def excess(self, value: float) -> float:
        """Distance outside the band (0.0 when inside)."""
        if value < self.min:
            return self.min - value
        if value > self.max:
            return value - self.max
        return 0.0

    @property
    def width(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class PhysicalBounds:
    """Range a working sensor can physically report."""

    low: float
    high: float

    def clamp(self, value: float) -> float:
        return max(self.low, min(self.high, value))

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


# ── Target ranges ─────────────────────────────────────────────────────────────

DEFAULT_TARGETS: Mapping[SignalName, TargetRange] = MappingProxyType({
    SignalName.TEMPERATURE:     TargetRange(18.0, 21.0, 24.0),
    SignalName.HUMIDITY:        TargetRange(60.0, 70.0, 80.0),
    SignalName.SOIL_MOISTURE:   TargetRange(70.0, 77.5, 85.0),
    SignalName.LIGHT_INTENSITY: TargetRange(2000.0, 5000.0, 8000.0),
    SignalName.PH:              TargetRange(5.5, 6.0, 6.5),
    SignalName.EC:              TargetRange(1.0, 1.5, 2.0),
})

_STAGE_TARGET_OVERRIDES: dict[GrowthStage, dict[SignalName, TargetRange]] = {
    GrowthStage.GERMINATION: {
        SignalName.TEMPERATURE:     TargetRange(20.0, 22.0, 25.0),
        SignalName.HUMIDITY:        TargetRange(70.0, 80.0, 85.0),
        SignalName.LIGHT_INTENSITY: TargetRange(1000.0, 2000.0, 3000.0),
        SignalName.EC:              TargetRange(0.6, 0.8, 1.2),
    },
    GrowthStage.SEEDLING: {
        SignalName.PH: TargetRange(5.5, 5.8, 6.5),
        SignalName.EC: TargetRange(0.8, 1.0, 1.4),
    },
    GrowthStage.VEGETATIVE: {
        SignalName.PH: TargetRange(5.5, 5.8, 6.5),
        SignalName.EC: TargetRange(1.0, 1.4, 1.8),
    },
    GrowthStage.FLOWERING: {
        SignalName.TEMPERATURE: TargetRange(18.0, 20.0, 23.0),
        SignalName.HUMIDITY:    TargetRange(65.0, 75.0, 80.0),
        SignalName.EC:          TargetRange(1.2, 1.6, 2.0),
    },
    GrowthStage.FRUITING: {
        SignalName.HUMIDITY: TargetRange(60.0, 70.0, 75.0),
        SignalName.PH:       TargetRange(5.5, 6.2, 6.5),
        SignalName.EC:       TargetRange(1.4, 1.8, 2.2),
    },
    GrowthStage.HARVEST_READY: {
        SignalName.PH: TargetRange(5.5, 6.2, 6.5),
        SignalName.EC: TargetRange(1.2, 1.6, 2.0),
    },
    GrowthStage.POST_HARVEST: {
        SignalName.EC: TargetRange(0.8, 1.0, 1.4),
    },
}

# ── Physical bounds ───────────────────────────────────────────────────────────

PHYSICAL_BOUNDS: Mapping[SignalName, PhysicalBounds] = MappingProxyType({
    SignalName.TEMPERATURE:     PhysicalBounds(-20.0, 50.0),
    SignalName.HUMIDITY:        PhysicalBounds(0.0, 100.0),
    SignalName.SOIL_MOISTURE:   PhysicalBounds(0.0, 100.0),
    SignalName.LIGHT_INTENSITY: PhysicalBounds(0.0, 150_000.0),
    SignalName.PH:              PhysicalBounds(0.0, 14.0),
    SignalName.EC:              PhysicalBounds(0.0, 10.0),
})

# ── Weights ───────────────────────────────────────────────────────────────────
# Weights need not sum to 1; the aggregator normalizes by the weight sum.

DEFAULT_WEIGHTS: Mapping[SignalName, float] = MappingProxyType({
    SignalName.TEMPERATURE:     0.25,
    SignalName.HUMIDITY:        0.20,
    SignalName.SOIL_MOISTURE:   0.20,
    SignalName.LIGHT_INTENSITY: 0.15,
    SignalName.PH:              0.10,
    SignalName.EC:              0.10,
})

_STAGE_WEIGHT_OVERRIDES: dict[GrowthStage, dict[SignalName, float]] = {
    GrowthStage.GERMINATION: {
        SignalName.SOIL_MOISTURE:   0.30,
        SignalName.HUMIDITY:        0.25,
        SignalName.LIGHT_INTENSITY: 0.05,
        SignalName.EC:              0.05,
    },
    GrowthStage.FLOWERING: {
        SignalName.TEMPERATURE: 0.30,
        SignalName.HUMIDITY:    0.25,
    },
    GrowthStage.FRUITING: {
        SignalName.LIGHT_INTENSITY: 0.20,
        SignalName.EC:              0.15,
    },
}


def targets_for(stage: Optional[GrowthStage]) -> dict[SignalName, TargetRange]:
    """Return the full target-range table for a stage (``None`` = default context)."""
    targets = dict(DEFAULT_TARGETS)
    if stage is not None:
        targets.update(_STAGE_TARGET_OVERRIDES.get(stage, {}))
    return targets


def weights_for(stage: Optional[GrowthStage]) -> dict[SignalName, float]:
    """Return the built-in weight table for a stage (``None`` = default context)."""
    weights = dict(DEFAULT_WEIGHTS)
    if stage is not None:
        weights.update(_STAGE_WEIGHT_OVERRIDES.get(stage, {}))
    return weights
