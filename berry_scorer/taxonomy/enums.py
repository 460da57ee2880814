"""
Closed enums shared by every scoring component.

  - ``SignalName``    : which measured signal is this?
  - ``GrowthStage``   : where is the plant in its crop cycle?
  - ``Priority``      : ordered low < medium < high < critical.
  - ``Grade``         : letter grade derived from an overall score.
  - ``Action``        : plant-level action emitted by the scorer's rule cascade.
  - ``ControlAction`` : per-parameter direction for climate/nutrient adjustments.
  - ``Trend``         : direction of a historical yield or quality series.

Usage example::

    from berry_scorer.taxonomy.enums import SignalName, Priority

    name = SignalName.parse("soilMoisture")      # SignalName.SOIL_MOISTURE
    assert Priority.CRITICAL > Priority.HIGH

This module has NO imports from any other ``berry_scorer`` package.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional


class SignalName(StrEnum):
    """Measured signals the scorer understands.  Unknown names are rejected."""

    TEMPERATURE = "temperature"
    """Air temperature, °C."""

    HUMIDITY = "humidity"
    """Relative humidity, %."""

    SOIL_MOISTURE = "soil_moisture"
    """Volumetric soil moisture, %."""

    LIGHT_INTENSITY = "light_intensity"
    """Light intensity at canopy, lux."""

    PH = "ph"
    """Root-zone pH."""

    EC = "ec"
    """Electrical conductivity of the nutrient solution, mS/cm."""

    @classmethod
    def parse(cls, name: str) -> Optional["SignalName"]:
        """Resolve a snake_case value or camelCase alias; ``None`` if unknown."""
        if not isinstance(name, str):
            return None
        key = name.strip()
        if key in _SIGNAL_ALIASES:
            return _SIGNAL_ALIASES[key]
        try:
            return cls(key.lower())
        except ValueError:
            return None


_SIGNAL_ALIASES: dict[str, SignalName] = {
    "soilMoisture":   SignalName.SOIL_MOISTURE,
    "lightIntensity": SignalName.LIGHT_INTENSITY,
    "pH":             SignalName.PH,
    "EC":             SignalName.EC,
}


class GrowthStage(StrEnum):
    """Strawberry crop-cycle stages, in cycle order."""

    GERMINATION = "germination"
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    FRUITING = "fruiting"
    HARVEST_READY = "harvest-ready"
    POST_HARVEST = "post-harvest"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["GrowthStage"]:
        """Resolve a stage name (``harvest_ready`` and ``harvest-ready`` both work)."""
        if not name or not isinstance(name, str):
            return None
        try:
            return cls(name.strip().lower().replace("_", "-"))
        except ValueError:
            return None

    @property
    def position(self) -> int:
        """Zero-based position in the crop cycle."""
        return list(GrowthStage).index(self)


class Priority(StrEnum):
    """Urgency tier.  Comparison follows declaration order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Priority).index(self)

    def __ge__(self, other: "Priority") -> bool:
        return self.rank >= Priority(other).rank

    def __gt__(self, other: "Priority") -> bool:
        return self.rank > Priority(other).rank

    def __le__(self, other: "Priority") -> bool:
        return self.rank <= Priority(other).rank

    def __lt__(self, other: "Priority") -> bool:
        return self.rank < Priority(other).rank


class Grade(StrEnum):
    """Letter grade for an overall score."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class Action(StrEnum):
    """Plant-level action recommended by the scoring cascade."""

    MAINTAIN = "maintain"
    """Conditions on target; keep current settings."""

    MONITOR = "monitor"
    """Minor drift or unreliable data; watch closely."""

    ADJUST = "adjust"
    """One or more signals need correcting."""

    INTERVENE = "intervene"
    """Conditions are harmful; act immediately."""


class ControlAction(StrEnum):
    """Direction of a single climate or nutrient adjustment."""

    INCREASE = "increase"
    DECREASE = "decrease"
    MAINTAIN = "maintain"


class Trend(StrEnum):
    """Direction of a historical series (yield, berry quality)."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
