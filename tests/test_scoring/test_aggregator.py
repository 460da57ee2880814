"""
Tests for berry_scorer/scoring/aggregator.py.

What we test
------------
validate_weights():
  - Accepts signal names, camelCase aliases and SignalName keys.
  - Rejects unknown keys, negative, non-finite, boolean and non-numeric weights
    with ConfigurationError carrying the offending field.

aggregate():
  - Weighted mean over the signals present.
  - Scaling every weight by a positive constant leaves the score unchanged.
  - Signals without a weight do not contribute.
  - Raises ConfigurationError when the active weights sum to zero.
  - 0.0 for an empty sub-score list.

compute_confidence():
  - Complete, in-band input → max_confidence.
  - Out-of-band, invalid and incompleteness penalties each lower it.
  - Always clamped to [min_confidence, max_confidence].
"""

from __future__ import annotations

import math

import pytest

from berry_scorer.config import ScoringConfig
from berry_scorer.errors import ConfigurationError
from berry_scorer.scoring.aggregator import (
    aggregate,
    compute_confidence,
    data_completeness,
    expected_signals,
    out_of_band_factor,
    validate_weights,
)
from berry_scorer.taxonomy.enums import SignalName
from berry_scorer.taxonomy.tables import DEFAULT_WEIGHTS

SETTINGS = ScoringConfig()


class TestValidateWeights:
    def test_accepts_names_and_aliases(self):
        table = validate_weights({"temperature": 0.5, "soilMoisture": 0.3, SignalName.EC: 1})
        assert table == {
            SignalName.TEMPERATURE: 0.5,
            SignalName.SOIL_MOISTURE: 0.3,
            SignalName.EC: 1.0,
        }

    def test_unknown_signal_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_weights({"co2": 0.5}, context="weights.fruiting")
        assert exc_info.value.field == "weights.fruiting.co2"

    @pytest.mark.parametrize("bad", [-0.1, math.nan, math.inf, True, "heavy", None])
    def test_bad_weight_rejected(self, bad):
        with pytest.raises(ConfigurationError):
            validate_weights({"temperature": bad})

    def test_zero_weight_allowed(self):
        assert validate_weights({"ph": 0})[SignalName.PH] == 0.0


class TestAggregate:
    def test_weighted_mean(self, make_sub_score):
        subs = [
            make_sub_score(SignalName.TEMPERATURE, 21.0),   # 100
            make_sub_score(SignalName.HUMIDITY, 80.0),      # 70
        ]
        weights = {SignalName.TEMPERATURE: 3.0, SignalName.HUMIDITY: 1.0}
        assert aggregate(subs, weights) == pytest.approx((3 * 100 + 70) / 4)

    @pytest.mark.parametrize("factor", [0.01, 2.0, 1000.0])
    def test_scaling_weights_leaves_score_unchanged(self, make_sub_score, factor):
        subs = [
            make_sub_score(SignalName.TEMPERATURE, 23.0),
            make_sub_score(SignalName.HUMIDITY, 64.0),
            make_sub_score(SignalName.PH, 6.4),
        ]
        weights = dict(DEFAULT_WEIGHTS)
        scaled = {s: w * factor for s, w in weights.items()}
        assert aggregate(subs, scaled) == pytest.approx(aggregate(subs, weights))

    def test_unweighted_signal_does_not_contribute(self, make_sub_score):
        subs = [
            make_sub_score(SignalName.TEMPERATURE, 21.0),
            make_sub_score(SignalName.HUMIDITY, 10.0),
        ]
        assert aggregate(subs, {SignalName.TEMPERATURE: 1.0}) == pytest.approx(100.0)

    def test_zero_active_weight_raises(self, make_sub_score):
        subs = [make_sub_score(SignalName.TEMPERATURE, 21.0)]
        with pytest.raises(ConfigurationError, match="sum to zero"):
            aggregate(subs, {SignalName.TEMPERATURE: 0.0, SignalName.HUMIDITY: 1.0})

    def test_empty_sub_scores(self):
        assert aggregate([], dict(DEFAULT_WEIGHTS)) == 0.0


class TestCompleteness:
    def test_expected_signals_are_positively_weighted(self):
        weights = {SignalName.TEMPERATURE: 1.0, SignalName.PH: 0.0}
        assert expected_signals(weights) == [SignalName.TEMPERATURE]

    def test_fraction_supplied(self):
        present = [SignalName.TEMPERATURE, SignalName.HUMIDITY, SignalName.PH]
        assert data_completeness(present, DEFAULT_WEIGHTS) == pytest.approx(0.5)

    def test_nothing_expected_is_complete(self):
        assert data_completeness([], {SignalName.PH: 0.0}) == 1.0


class TestConfidence:
    def _all_optimal(self, make_sub_score):
        return [
            make_sub_score(SignalName.TEMPERATURE, 21.0),
            make_sub_score(SignalName.HUMIDITY, 70.0),
            make_sub_score(SignalName.SOIL_MOISTURE, 77.5),
            make_sub_score(SignalName.LIGHT_INTENSITY, 5000.0),
            make_sub_score(SignalName.PH, 6.0),
            make_sub_score(SignalName.EC, 1.5),
        ]

    def test_complete_in_band_is_max(self, make_sub_score):
        subs = self._all_optimal(make_sub_score)
        assert compute_confidence(subs, 1.0, SETTINGS) == pytest.approx(0.95)

    def test_no_sub_scores_is_min(self):
        assert compute_confidence([], 0.0, SETTINGS) == pytest.approx(0.30)

    def test_incompleteness_penalty(self, make_sub_score):
        subs = self._all_optimal(make_sub_score)[:3]
        assert compute_confidence(subs, 0.5, SETTINGS) == pytest.approx(0.95 - 0.4 * 0.5)

    def test_out_of_band_penalty_scales_with_distance(self, make_sub_score):
        near = make_sub_score(SignalName.TEMPERATURE, 25.0)   # 1 over a 6-wide band
        far = make_sub_score(SignalName.TEMPERATURE, 40.0)
        assert out_of_band_factor(near) == pytest.approx(1 / 6)
        assert out_of_band_factor(far) == pytest.approx(1.0)
        assert compute_confidence([near], 1.0, SETTINGS) > compute_confidence([far], 1.0, SETTINGS)

    def test_invalid_reading_penalty(self, make_sub_score):
        # humidity 150 → clamped to 100: fully out of band and invalid
        sub = make_sub_score(SignalName.HUMIDITY, 150.0)
        assert compute_confidence([sub], 1.0, SETTINGS) == pytest.approx(0.95 - 0.2 - 0.2)

    def test_clamped_to_min(self, make_sub_score):
        subs = [
            make_sub_score(SignalName.HUMIDITY, 150.0),
            make_sub_score(SignalName.PH, 20.0),
            make_sub_score(SignalName.EC, 50.0),
        ]
        assert compute_confidence(subs, 0.1, SETTINGS) == pytest.approx(0.30)

    def test_custom_band(self, make_sub_score):
        settings = ScoringConfig(min_confidence=0.1, max_confidence=0.8)
        subs = self._all_optimal(make_sub_score)
        assert compute_confidence(subs, 1.0, settings) == pytest.approx(0.8)
