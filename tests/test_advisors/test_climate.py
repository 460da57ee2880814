"""
Tests for berry_scorer/advisors/climate.py.

What we test
------------
generate_commands() via optimize_climate():
  - On-target climate → no commands, "optimal" recommendation.
  - Dead band suppresses tiny deviations.
  - Far outside the band → critical; outside → high; inside → medium, or
    high when the plant is stressed.
  - Intensity scaling and caps.
  - Dark period: lights-off command only, and only if lights are on.
  - Ventilation cascade, with missing readings taken at their optimum.
  - Stage targets change the thresholds.
  - Invalid time of day assumes light hours.

predict_conditions() / project_health() / energy_efficiency():
  - Commands move conditions toward target, clamped to plausible bounds.
  - Projected health drops for predicted extremes.
"""

from __future__ import annotations

import math

import pytest

from berry_scorer.advisors.climate import (
    ClimateParameter,
    ClimateReadings,
    is_light_hours,
    optimize_climate,
    project_health,
)
from berry_scorer.taxonomy.enums import ControlAction, GrowthStage, Priority, SignalName
from berry_scorer.taxonomy.tables import targets_for

ON_TARGET = ClimateReadings(temperature=21.0, humidity=70.0, light_intensity=5000.0)


def _advise(readings: ClimateReadings, health: float = 90.0, hour: float = 12.0, **kwargs):
    return optimize_climate(readings, health_score=health, time_of_day=hour, **kwargs)


def _command(advice, parameter: ClimateParameter):
    matches = [c for c in advice.commands if c.parameter == parameter]
    return matches[0] if matches else None


class TestOnTarget:
    def test_no_commands(self):
        advice = _advise(ON_TARGET)
        assert advice.commands == ()
        assert advice.recommendations == (
            "Climate conditions are optimal - maintain current settings",
        )
        assert advice.energy_efficiency == pytest.approx(100.0)
        assert advice.predicted == ON_TARGET

    def test_dead_band(self):
        advice = _advise(ClimateReadings(temperature=21.5, humidity=73.0))
        assert advice.commands == ()


class TestBandCascade:
    def test_far_above_max_is_critical(self):
        advice = _advise(ClimateReadings(temperature=30.0))
        command = _command(advice, ClimateParameter.TEMPERATURE)
        assert command.action == ControlAction.DECREASE
        assert command.priority == Priority.CRITICAL
        assert command.intensity == pytest.approx(100.0)
        assert command.reasoning == "Temperature 30°C exceeds maximum 24°C"
        assert advice.recommendations[0] == "CRITICAL: Immediate climate adjustments required"

    def test_above_max_is_high(self):
        command = _command(_advise(ClimateReadings(temperature=25.5)), ClimateParameter.TEMPERATURE)
        assert command.priority == Priority.HIGH
        assert command.intensity == pytest.approx(90.0)

    def test_far_below_min_is_critical(self):
        command = _command(_advise(ClimateReadings(humidity=40.0)), ClimateParameter.HUMIDITY)
        assert command.action == ControlAction.INCREASE
        assert command.priority == Priority.CRITICAL
        assert command.intensity == pytest.approx(60.0)
        assert command.duration_minutes == 45

    def test_inside_band_is_medium(self):
        command = _command(_advise(ClimateReadings(temperature=22.5)), ClimateParameter.TEMPERATURE)
        assert command.action == ControlAction.DECREASE
        assert command.priority == Priority.MEDIUM
        assert command.intensity == pytest.approx(15.0)

    def test_inside_band_stressed_is_high(self):
        advice = _advise(ClimateReadings(temperature=19.5), health=65.0)
        command = _command(advice, ClimateParameter.TEMPERATURE)
        assert command.action == ControlAction.INCREASE
        assert command.priority == Priority.HIGH

    def test_stage_targets(self):
        readings = ClimateReadings(temperature=23.5)
        default = _command(_advise(readings), ClimateParameter.TEMPERATURE)
        flowering = _command(
            _advise(readings, stage=GrowthStage.FLOWERING), ClimateParameter.TEMPERATURE
        )
        assert default.priority == Priority.MEDIUM
        assert flowering.priority == Priority.HIGH

    def test_explicit_targets_override_stage(self):
        targets = targets_for(GrowthStage.FLOWERING)
        advice = _advise(ClimateReadings(temperature=23.5), targets=targets)
        assert _command(advice, ClimateParameter.TEMPERATURE).priority == Priority.HIGH


class TestLightSchedule:
    @pytest.mark.parametrize(
        "hour, expected", [(6.0, True), (12.0, True), (22.0, True), (22.5, False), (3.0, False)]
    )
    def test_is_light_hours(self, hour, expected):
        assert is_light_hours(hour) is expected

    def test_lights_off_at_night(self):
        advice = _advise(ClimateReadings(light_intensity=3000.0), hour=23.0)
        command = _command(advice, ClimateParameter.LIGHT)
        assert command.action == ControlAction.DECREASE
        assert command.intensity == pytest.approx(100.0)
        assert command.reasoning == "Dark period - turning off lights"

    def test_dark_and_off_needs_nothing(self):
        advice = _advise(ClimateReadings(light_intensity=0.0), hour=2.0)
        assert _command(advice, ClimateParameter.LIGHT) is None

    def test_low_light_in_day(self):
        command = _command(_advise(ClimateReadings(light_intensity=3000.0)), ClimateParameter.LIGHT)
        assert command.action == ControlAction.INCREASE
        assert command.intensity == pytest.approx(10.0)

    def test_invalid_hour_assumes_light_hours(self):
        advice = _advise(ClimateReadings(light_intensity=3000.0), hour=math.nan)
        command = _command(advice, ClimateParameter.LIGHT)
        assert command.reasoning != "Dark period - turning off lights"


class TestVentilation:
    def test_heat_triggers_critical_ventilation(self):
        command = _command(_advise(ClimateReadings(temperature=30.0)), ClimateParameter.VENTILATION)
        assert command.action == ControlAction.INCREASE
        assert command.priority == Priority.CRITICAL
        assert command.intensity == pytest.approx(100.0)
        assert command.reasoning == "High temperature - increasing ventilation"

    def test_humidity_driver(self):
        command = _command(_advise(ClimateReadings(humidity=88.0)), ClimateParameter.VENTILATION)
        assert command.priority == Priority.HIGH
        assert command.reasoning == "High humidity - increasing ventilation"

    def test_cold_and_dry_reduces_ventilation(self):
        command = _command(
            _advise(ClimateReadings(temperature=15.0, humidity=45.0)), ClimateParameter.VENTILATION
        )
        assert command.action == ControlAction.DECREASE
        assert command.intensity == pytest.approx(50.0)

    def test_poor_health_adds_circulation(self):
        command = _command(_advise(ClimateReadings(), health=40.0), ClimateParameter.VENTILATION)
        assert command.intensity == pytest.approx(30.0)

    def test_missing_readings_use_optimum(self):
        assert _advise(ClimateReadings()).commands == ()

    def test_ventilation_last(self):
        advice = _advise(ClimateReadings(temperature=30.0, humidity=95.0))
        assert advice.commands[-1].parameter == ClimateParameter.VENTILATION


class TestProjections:
    def test_prediction_clamped(self):
        advice = _advise(ClimateReadings(temperature=30.0))
        # decrease 100% for 30 min at 0.5 °C per unit → −25 °C, clamped to 10
        assert advice.predicted.temperature == pytest.approx(10.0)

    def test_projected_health_penalized(self):
        targets = targets_for(None)
        predicted = ClimateReadings(temperature=10.0, humidity=70.0, light_intensity=1000.0)
        # temp diff 11 → −22, light below min → −10
        assert project_health(90.0, predicted, targets) == pytest.approx(58.0)

    def test_energy_efficiency_drops_with_effort(self):
        calm = _advise(ON_TARGET)
        busy = _advise(ClimateReadings(temperature=30.0, humidity=40.0))
        assert busy.energy_efficiency < calm.energy_efficiency


class TestReadings:
    def test_from_signals(self):
        readings = ClimateReadings.from_signals(
            {"temperature": 21, "lightIntensity": "bad", "light_intensity": 4000, "co2": 1}
        )
        assert readings.temperature == pytest.approx(21.0)
        assert readings.light_intensity == pytest.approx(4000.0)
        assert readings.get(SignalName.HUMIDITY) is None
