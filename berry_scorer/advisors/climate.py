"""
Climate advisor: current readings + targets → per-parameter control commands.

Each controllable parameter (temperature, humidity, light) runs the same
band cascade, with a parameter-specific dead band around optimal::

    |value − optimal| < dead_band          → no command
    value > max + margin                   → decrease / critical
    value > max                            → decrease / high
    value < min − margin                   → increase / critical
    value < min                            → increase / high
    above optimal, plant health < 70       → decrease / high
    above optimal                          → decrease / medium
    below optimal, plant health < 70       → increase / high
    below optimal                          → increase / medium

Intensity (0–100 %) is ``|value − optimal| · out_scale`` (capped at 100)
outside the band and ``|value − optimal| · in_scale`` (capped at 50) inside.

Lights follow a dark period outside 06:00–22:00: any light reading above 0
yields a "lights off" command; no other light control runs at night.

Ventilation has its own cascade on temperature, humidity and plant health.

Predicted conditions apply each command for its duration and are clamped to
plausible bounds (temperature 10–35 °C, humidity 30–95 %, light 0–10 000 lux).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Mapping, Optional

from berry_scorer.scoring.cascade import Rule, RuleCascade, RuleOutcome
from berry_scorer.taxonomy.enums import ControlAction, GrowthStage, Priority, SignalName
from berry_scorer.taxonomy.tables import TargetRange, targets_for
from berry_scorer.utils.numeric import as_finite, clamp

logger = logging.getLogger(__name__)

STRESSED_HEALTH = 70.0
LIGHT_HOURS = (6.0, 22.0)

PREDICTION_BOUNDS: dict[SignalName, tuple[float, float]] = {
    SignalName.TEMPERATURE:     (10.0, 35.0),
    SignalName.HUMIDITY:        (30.0, 95.0),
    SignalName.LIGHT_INTENSITY: (0.0, 10_000.0),
}

# Change per unit of (intensity · hours) when a command runs.
_RESPONSE_RATES: dict[SignalName, float] = {
    SignalName.TEMPERATURE:     0.5,
    SignalName.HUMIDITY:        2.0,
    SignalName.LIGHT_INTENSITY: 100.0,
}


class ClimateParameter(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    LIGHT = "light"
    VENTILATION = "ventilation"


@dataclass(frozen=True)
class ClimateReadings:
    """Current greenhouse conditions; any reading may be absent."""

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    light_intensity: Optional[float] = None
    soil_moisture: Optional[float] = None

    @classmethod
    def from_signals(cls, signals: Mapping[str, object]) -> "ClimateReadings":
        """Build from a raw ``{signal name → value}`` mapping, dropping unusable values."""
        values: dict[SignalName, float] = {}
        for key, raw in signals.items():
            signal = SignalName.parse(key)
            value = as_finite(raw)
            if signal is not None and value is not None:
                values.setdefault(signal, value)
        return cls(
            temperature=values.get(SignalName.TEMPERATURE),
            humidity=values.get(SignalName.HUMIDITY),
            light_intensity=values.get(SignalName.LIGHT_INTENSITY),
            soil_moisture=values.get(SignalName.SOIL_MOISTURE),
        )

    def get(self, signal: SignalName) -> Optional[float]:
        return getattr(self, signal.value, None)


@dataclass(frozen=True)
class ClimateCommand:
    """One control instruction.

    Attributes:
        parameter:        What to adjust.
        action:           Direction of the adjustment.
        intensity:        0–100 percent of actuator capacity.
        duration_minutes: How long to apply it.
        priority:         Urgency tier.
        reasoning:        Rendered explanation.
    """

    parameter: ClimateParameter
    action: ControlAction
    intensity: float
    duration_minutes: int
    priority: Priority
    reasoning: str


@dataclass(frozen=True)
class ClimateAdvice:
    """Output of ``optimize_climate()``."""

    commands: tuple[ClimateCommand, ...]
    predicted: ClimateReadings
    projected_health: float
    energy_efficiency: float
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class _BandControl:
    """Tuning for one band-controlled parameter."""

    parameter: ClimateParameter
    signal: SignalName
    dead_band: float
    critical_margin: float
    out_scale: float
    in_scale: float
    duration_minutes: int
    cascade: RuleCascade


_OUT_OF_BAND_RULES = frozenset({"far_above_max", "above_max", "far_below_min", "below_min"})


def _band_cascade(label: str, unit: str) -> RuleCascade:
    """Band cascade for one parameter.

    Context keys: value, min, optimal, max, margin, health, dead_band.
    """
    stressed = lambda c: c["health"] < STRESSED_HEALTH  # noqa: E731
    return RuleCascade(
        rules=[
            Rule("on_target", lambda c: abs(c["value"] - c["optimal"]) < c["dead_band"],
                 RuleOutcome(ControlAction.MAINTAIN, Priority.LOW,
                             f"{label} {{value:g}}{unit} is on target")),
            Rule("far_above_max", lambda c: c["value"] > c["max"] + c["margin"],
                 RuleOutcome(ControlAction.DECREASE, Priority.CRITICAL,
                             f"{label} {{value:g}}{unit} exceeds maximum {{max:g}}{unit}")),
            Rule("above_max", lambda c: c["value"] > c["max"],
                 RuleOutcome(ControlAction.DECREASE, Priority.HIGH,
                             f"{label} {{value:g}}{unit} exceeds maximum {{max:g}}{unit}")),
            Rule("far_below_min", lambda c: c["value"] < c["min"] - c["margin"],
                 RuleOutcome(ControlAction.INCREASE, Priority.CRITICAL,
                             f"{label} {{value:g}}{unit} below minimum {{min:g}}{unit}")),
            Rule("below_min", lambda c: c["value"] < c["min"],
                 RuleOutcome(ControlAction.INCREASE, Priority.HIGH,
                             f"{label} {{value:g}}{unit} below minimum {{min:g}}{unit}")),
            Rule("above_optimal_stressed", lambda c: c["value"] > c["optimal"] and stressed(c),
                 RuleOutcome(ControlAction.DECREASE, Priority.HIGH,
                             f"{label} {{value:g}}{unit} above optimal {{optimal:g}}{unit}")),
            Rule("above_optimal", lambda c: c["value"] > c["optimal"],
                 RuleOutcome(ControlAction.DECREASE, Priority.MEDIUM,
                             f"{label} {{value:g}}{unit} above optimal {{optimal:g}}{unit}")),
            Rule("below_optimal_stressed", stressed,
                 RuleOutcome(ControlAction.INCREASE, Priority.HIGH,
                             f"{label} {{value:g}}{unit} below optimal {{optimal:g}}{unit}")),
        ],
        default=RuleOutcome(ControlAction.INCREASE, Priority.MEDIUM,
                            f"{label} {{value:g}}{unit} below optimal {{optimal:g}}{unit}"),
    )


_BAND_CONTROLS: tuple[_BandControl, ...] = (
    _BandControl(ClimateParameter.TEMPERATURE, SignalName.TEMPERATURE,
                 dead_band=1.0, critical_margin=5.0, out_scale=20.0, in_scale=10.0,
                 duration_minutes=30, cascade=_band_cascade("Temperature", "°C")),
    _BandControl(ClimateParameter.HUMIDITY, SignalName.HUMIDITY,
                 dead_band=5.0, critical_margin=10.0, out_scale=2.0, in_scale=1.0,
                 duration_minutes=45, cascade=_band_cascade("Humidity", "%")),
    _BandControl(ClimateParameter.LIGHT, SignalName.LIGHT_INTENSITY,
                 dead_band=100.0, critical_margin=1000.0, out_scale=0.01, in_scale=0.005,
                 duration_minutes=60, cascade=_band_cascade("Light intensity", " lux")),
)

_VENTILATION_INTENSITY: dict[str, float] = {
    "severe_heat_or_humidity": 100.0,
    "heat_or_humidity": 70.0,
    "cold_and_dry": 50.0,
    "poor_health": 30.0,
}

_VENTILATION_CASCADE = RuleCascade(
    rules=[
        Rule("severe_heat_or_humidity", lambda c: c["humidity"] > 90 or c["temperature"] > 28,
             RuleOutcome(ControlAction.INCREASE, Priority.CRITICAL,
                         "High {driver} - increasing ventilation")),
        Rule("heat_or_humidity", lambda c: c["humidity"] > 85 or c["temperature"] > 26,
             RuleOutcome(ControlAction.INCREASE, Priority.HIGH,
                         "High {driver} - increasing ventilation")),
        Rule("cold_and_dry", lambda c: c["humidity"] < 50 and c["temperature"] < 18,
             RuleOutcome(ControlAction.DECREASE, Priority.MEDIUM,
                         "Low humidity and temperature - reducing ventilation")),
        Rule("poor_health", lambda c: c["health"] < 60,
             RuleOutcome(ControlAction.INCREASE, Priority.MEDIUM,
                         "Poor plant health - increasing air circulation")),
    ],
    default=RuleOutcome(ControlAction.MAINTAIN, Priority.LOW, "Ventilation adequate"),
)


def is_light_hours(time_of_day: float) -> bool:
    start, end = LIGHT_HOURS
    return start <= time_of_day % 24.0 <= end


def band_command(
    control: _BandControl,
    value: float,
    target: TargetRange,
    health_score: float,
) -> Optional[ClimateCommand]:
    """Run one parameter's band cascade; ``None`` when inside the dead band."""
    outcome = control.cascade.evaluate({
        "value": value,
        "min": target.min,
        "optimal": target.optimal,
        "max": target.max,
        "margin": control.critical_margin,
        "dead_band": control.dead_band,
        "health": health_score,
    })
    if outcome.action == ControlAction.MAINTAIN:
        return None

    diff = abs(value - target.optimal)
    if outcome.rule in _OUT_OF_BAND_RULES:
        intensity = min(100.0, diff * control.out_scale)
    else:
        intensity = min(50.0, diff * control.in_scale)

    return ClimateCommand(
        parameter=control.parameter,
        action=ControlAction(outcome.action),
        intensity=round(intensity, 2),
        duration_minutes=control.duration_minutes,
        priority=outcome.priority,
        reasoning=outcome.reasoning,
    )


def ventilation_command(
    readings: ClimateReadings,
    targets: Mapping[SignalName, TargetRange],
    health_score: float,
) -> Optional[ClimateCommand]:
    """Ventilation cascade; a missing reading is taken at its target optimum."""
    temperature = readings.temperature
    if temperature is None:
        temperature = targets[SignalName.TEMPERATURE].optimal
    humidity = readings.humidity
    if humidity is None:
        humidity = targets[SignalName.HUMIDITY].optimal

    outcome = _VENTILATION_CASCADE.evaluate({
        "temperature": temperature,
        "humidity": humidity,
        "health": health_score,
        "driver": "humidity" if humidity > 85 else "temperature",
    })
    if not outcome.matched:
        return None
    return ClimateCommand(
        parameter=ClimateParameter.VENTILATION,
        action=ControlAction(outcome.action),
        intensity=_VENTILATION_INTENSITY[outcome.rule],
        duration_minutes=30,
        priority=outcome.priority,
        reasoning=outcome.reasoning,
    )


def generate_commands(
    readings: ClimateReadings,
    targets: Mapping[SignalName, TargetRange],
    health_score: float,
    time_of_day: float,
) -> list[ClimateCommand]:
    """Commands in parameter order: temperature, humidity, light, ventilation."""
    commands: list[ClimateCommand] = []
    for control in _BAND_CONTROLS:
        value = readings.get(control.signal)
        if value is None:
            continue
        if control.parameter == ClimateParameter.LIGHT and not is_light_hours(time_of_day):
            if value > 0:
                commands.append(ClimateCommand(
                    parameter=ClimateParameter.LIGHT,
                    action=ControlAction.DECREASE,
                    intensity=100.0,
                    duration_minutes=60,
                    priority=Priority.MEDIUM,
                    reasoning="Dark period - turning off lights",
                ))
            continue
        command = band_command(control, value, targets[control.signal], health_score)
        if command is not None:
            commands.append(command)

    vent = ventilation_command(readings, targets, health_score)
    if vent is not None:
        commands.append(vent)
    return commands


def predict_conditions(readings: ClimateReadings, commands: list[ClimateCommand]) -> ClimateReadings:
    """Conditions after every command has run for its duration, clamped to plausible bounds."""
    signal_for = {c.parameter: c.signal for c in _BAND_CONTROLS}
    values = {signal: readings.get(signal) for signal in PREDICTION_BOUNDS}

    for command in commands:
        signal = signal_for.get(command.parameter)
        if signal is None or values[signal] is None:
            continue
        change = command.intensity * (command.duration_minutes / 60.0) * _RESPONSE_RATES[signal]
        if command.action == ControlAction.INCREASE:
            values[signal] += change
        elif command.action == ControlAction.DECREASE:
            values[signal] -= change

    for signal, (lo, hi) in PREDICTION_BOUNDS.items():
        if values[signal] is not None:
            values[signal] = round(clamp(values[signal], lo, hi), 2)

    return replace(
        readings,
        temperature=values[SignalName.TEMPERATURE],
        humidity=values[SignalName.HUMIDITY],
        light_intensity=values[SignalName.LIGHT_INTENSITY],
    )


def project_health(
    health_score: float,
    predicted: ClimateReadings,
    targets: Mapping[SignalName, TargetRange],
) -> float:
    """Health score adjusted for the predicted conditions, 0–100."""
    projected = health_score

    if predicted.temperature is not None:
        temp_diff = abs(predicted.temperature - targets[SignalName.TEMPERATURE].optimal)
        if temp_diff > 5:
            projected -= temp_diff * 2

    if predicted.humidity is not None:
        humidity_diff = abs(predicted.humidity - targets[SignalName.HUMIDITY].optimal)
        if humidity_diff > 15:
            projected -= humidity_diff

    if predicted.light_intensity is not None:
        light = targets[SignalName.LIGHT_INTENSITY]
        if predicted.light_intensity < light.min:
            projected -= 10
        elif predicted.light_intensity > light.max:
            projected -= 5

    return round(clamp(projected, 0.0, 100.0), 2)


def energy_efficiency(
    commands: list[ClimateCommand],
    readings: ClimateReadings,
    targets: Mapping[SignalName, TargetRange],
) -> float:
    """100 minus penalties for total actuator effort and distance from optimal climate."""
    efficiency = 100.0 - 0.1 * sum(c.intensity for c in commands)
    if readings.temperature is not None:
        efficiency -= 2.0 * abs(readings.temperature - targets[SignalName.TEMPERATURE].optimal)
    if readings.humidity is not None:
        efficiency -= 0.5 * abs(readings.humidity - targets[SignalName.HUMIDITY].optimal)
    return round(clamp(efficiency, 0.0, 100.0), 2)


def climate_recommendations(commands: list[ClimateCommand], projected_health: float) -> list[str]:
    recommendations: list[str] = []

    critical = [c for c in commands if c.priority == Priority.CRITICAL]
    if critical:
        recommendations.append("CRITICAL: Immediate climate adjustments required")
        recommendations.extend(f"- {c.reasoning}" for c in critical)

    high = [c for c in commands if c.priority == Priority.HIGH]
    if high:
        recommendations.append("High priority climate adjustments needed")
        recommendations.extend(f"- {c.reasoning}" for c in high)

    if projected_health < STRESSED_HEALTH:
        recommendations.append("Monitor plant health closely - conditions may be suboptimal")

    if not commands:
        recommendations.append("Climate conditions are optimal - maintain current settings")

    return recommendations


def optimize_climate(
    readings: ClimateReadings,
    health_score: float,
    time_of_day: float,
    stage: Optional[GrowthStage] = None,
    targets: Optional[Mapping[SignalName, TargetRange]] = None,
) -> ClimateAdvice:
    """Control commands and projections for the current climate.

    Args:
        readings:     Current conditions.
        health_score: Current plant health (0–100), e.g. the overall score.
        time_of_day:  Hour of day, 0–24; selects the light/dark period.
        stage:        Growth stage used to pick targets when ``targets`` is omitted.
        targets:      Explicit target ranges per signal.
    """
    targets = targets if targets is not None else targets_for(stage)
    health = clamp(as_finite(health_score) or 0.0, 0.0, 100.0)
    hour = as_finite(time_of_day)
    if hour is None:
        logger.warning("Invalid time of day %r; assuming light hours", time_of_day)
        hour = 12.0

    commands = generate_commands(readings, targets, health, hour)
    predicted = predict_conditions(readings, commands)
    projected = project_health(health, predicted, targets)

    logger.debug("Climate advice | commands=%d | projected_health=%.1f", len(commands), projected)
    return ClimateAdvice(
        commands=tuple(commands),
        predicted=predicted,
        projected_health=projected,
        energy_efficiency=energy_efficiency(commands, readings, targets),
        recommendations=tuple(climate_recommendations(commands, projected)),
    )
