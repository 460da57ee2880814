"""
Tests for berry_scorer/scoring/recommendations.py.

What we test
------------
grade_for():
  - A >= 90, B >= 80, C >= 70, D >= 60, F otherwise (boundaries inclusive).

signal_issue():
  - None for an on-optimal reading.
  - critical / high / low tiers by sub-score and band position.
  - Physically implausible readings are reported as high.

build_rationale():
  - Cascade reasoning always comes first.
  - Issues ordered critical → high → low, then lower sub-score first.
  - Missing-signal notes, ignored-signal notes and the stage note follow.
  - Pure: same inputs give the same list.
"""

from __future__ import annotations

import pytest

from berry_scorer.scoring.cascade import CascadeResult
from berry_scorer.scoring.recommendations import build_rationale, grade_for, signal_issue
from berry_scorer.taxonomy.enums import Action, Grade, Priority, SignalName

OUTCOME = CascadeResult(
    rule="below_target",
    action=Action.ADJUST,
    priority=Priority.MEDIUM,
    reasoning="Overall score 66.3 is below target; adjust growing conditions",
)


class TestGradeFor:
    @pytest.mark.parametrize(
        "score, grade",
        [
            (100.0, Grade.A), (90.0, Grade.A), (89.99, Grade.B), (80.0, Grade.B),
            (70.0, Grade.C), (60.0, Grade.D), (59.99, Grade.F), (0.0, Grade.F),
        ],
    )
    def test_thresholds(self, score, grade):
        assert grade_for(score) == grade


class TestSignalIssue:
    def test_on_optimal_is_none(self, make_sub_score):
        assert signal_issue(make_sub_score(SignalName.TEMPERATURE, 21.0)) is None

    def test_far_outside_is_critical(self, make_sub_score):
        priority, message = signal_issue(make_sub_score(SignalName.TEMPERATURE, 30.0))
        assert priority == Priority.CRITICAL
        assert "far above target range 18-24°C" in message

    def test_outside_band_is_high(self, make_sub_score):
        priority, message = signal_issue(make_sub_score(SignalName.HUMIDITY, 82.0))
        assert priority == Priority.HIGH
        assert message == "Humidity 82% exceeds maximum 80%"

    def test_below_band_is_high(self, make_sub_score):
        priority, message = signal_issue(make_sub_score(SignalName.HUMIDITY, 58.0))
        assert priority == Priority.HIGH
        assert "below minimum 60%" in message

    def test_inside_band_off_optimal_is_low(self, make_sub_score):
        priority, message = signal_issue(make_sub_score(SignalName.PH, 6.2))
        assert priority == Priority.LOW
        assert message == "pH 6.2 slightly above optimal 6"

    def test_implausible_reading_is_high(self, make_sub_score):
        priority, message = signal_issue(make_sub_score(SignalName.HUMIDITY, 150.0))
        assert priority == Priority.HIGH
        assert "physically implausible" in message
        assert "clamped to 100%" in message


class TestBuildRationale:
    def test_outcome_first(self, make_sub_score):
        reasons = build_rationale(OUTCOME, [make_sub_score(SignalName.TEMPERATURE, 30.0)])
        assert reasons[0] == OUTCOME.reasoning

    def test_issue_ordering(self, make_sub_score):
        subs = [
            make_sub_score(SignalName.TEMPERATURE, 21.0),      # no issue
            make_sub_score(SignalName.HUMIDITY, 82.0),         # high, 56
            make_sub_score(SignalName.SOIL_MOISTURE, 88.0),    # high, 42
            make_sub_score(SignalName.PH, 6.2),                # low
            make_sub_score(SignalName.EC, 5.0),                # critical
        ]
        reasons = build_rationale(OUTCOME, subs)
        assert len(reasons) == 5
        assert reasons[1].startswith("EC 5 mS/cm is far above")
        assert reasons[2].startswith("Soil moisture 88%")
        assert reasons[3].startswith("Humidity 82%")
        assert reasons[4].startswith("pH 6.2")

    def test_trailing_notes_in_order(self, make_sub_score):
        reasons = build_rationale(
            OUTCOME,
            [make_sub_score(SignalName.TEMPERATURE, 21.0)],
            missing=[SignalName.LIGHT_INTENSITY, SignalName.EC],
            ignored_signals=["co2"],
            stage_note="Unknown growth stage 'budding'; default ranges applied",
        )
        assert reasons[1:] == [
            "No usable reading for Light intensity; confidence reduced",
            "No usable reading for EC; confidence reduced",
            "Ignored unrecognized signal 'co2'",
            "Unknown growth stage 'budding'; default ranges applied",
        ]

    def test_all_on_target_only_outcome(self, make_sub_score):
        reasons = build_rationale(OUTCOME, [make_sub_score(SignalName.PH, 6.0)])
        assert reasons == [OUTCOME.reasoning]

    def test_pure(self, make_sub_score):
        subs = [make_sub_score(SignalName.HUMIDITY, 82.0), make_sub_score(SignalName.PH, 7.0)]
        assert build_rationale(OUTCOME, subs) == build_rationale(OUTCOME, subs)
