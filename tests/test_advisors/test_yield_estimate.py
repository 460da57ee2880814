"""
Tests for berry_scorer/advisors/yield_estimate.py.

What we test
------------
estimate_yield():
  - Harvest-ready plant in ideal conditions: berry_count · 8 g.
  - Stage and health multipliers reduce the estimate.
  - Unknown stage → 0 g with an "early or unknown stage" factor.
  - Missing readings keep their factor neutral but lower confidence,
    widening the yield range.
  - Negative or junk berry counts count as zero.

Factors:
  - banded_multiplier() picks the first containing band, else the floor.
  - nutrient_balance() rewards an even N:P:K split.

yield_trends():
  - Fewer than 3 records → insufficient data.
  - Improving / declining / stable against a ±10 g threshold.
  - Seasonal pattern needs at least 3 months of data.
"""

from __future__ import annotations

import pytest

from berry_scorer.advisors.yield_estimate import (
    TEMPERATURE_BANDS,
    HarvestRecord,
    YieldConditions,
    banded_multiplier,
    detect_seasonal_pattern,
    estimate_yield,
    nutrient_balance,
    yield_trends,
)
from berry_scorer.taxonomy.enums import GrowthStage, Trend

IDEAL = YieldConditions(temperature=21.0, humidity=70.0, soil_moisture=78.0, ph=6.0)


class TestEstimateYield:
    def test_harvest_ready_ideal(self):
        estimate = estimate_yield(20, GrowthStage.HARVEST_READY, 95.0, IDEAL)
        assert estimate.expected_yield_g == pytest.approx(160.0)
        assert estimate.confidence == pytest.approx(1.0)
        assert estimate.yield_range == (160.0, 160.0)
        assert estimate.days_to_harvest == 7
        assert "Optimal growth stage for yield" in estimate.positive_factors
        assert "Excellent plant health" in estimate.positive_factors
        assert estimate.recommendations[-1] == (
            "Excellent yield potential - maintain current conditions"
        )

    def test_fruiting_multipliers(self):
        estimate = estimate_yield(10, GrowthStage.FRUITING, 85.0, IDEAL)
        # 10 · 8 · 0.6 base · 0.95 health · 0.8 stage
        assert estimate.expected_yield_g == pytest.approx(36.48)
        assert estimate.days_to_harvest == 30
        assert "Consider additional fertilization to improve yield" in estimate.recommendations

    def test_unknown_stage(self):
        estimate = estimate_yield(20, None, 95.0, IDEAL)
        assert estimate.expected_yield_g == 0.0
        assert estimate.days_to_harvest == 0
        assert "Early or unknown growth stage - yield prediction uncertain" in (
            estimate.negative_factors
        )

    def test_vegetative_has_no_harvestable_weight(self):
        assert estimate_yield(20, GrowthStage.VEGETATIVE, 95.0, IDEAL).expected_yield_g == 0.0

    def test_missing_readings_neutral_but_less_confident(self):
        estimate = estimate_yield(10, GrowthStage.FRUITING, 85.0, YieldConditions())
        assert estimate.expected_yield_g == pytest.approx(36.48)
        assert estimate.confidence == pytest.approx(0.5)
        assert estimate.yield_range == pytest.approx((18.24, 54.72))

    def test_poor_conditions(self):
        conditions = YieldConditions(temperature=33.0, humidity=95.0, soil_moisture=50.0, ph=7.5)
        estimate = estimate_yield(20, GrowthStage.HARVEST_READY, 40.0, conditions)
        # 160 · 0.5 · 0.7 · 0.6 · 0.7 env · 0.5 health
        assert estimate.expected_yield_g == pytest.approx(11.76)
        assert estimate.confidence == pytest.approx(0.3)
        assert "Poor plant health detected" in estimate.negative_factors
        assert "Adjust temperature to 18-24°C for optimal yield" in estimate.recommendations

    @pytest.mark.parametrize("count", [-5, None, "many"])
    def test_bad_berry_count(self, count):
        assert estimate_yield(count, GrowthStage.HARVEST_READY, 95.0, IDEAL).expected_yield_g == 0.0


class TestFactors:
    @pytest.mark.parametrize(
        "value, multiplier", [(21.0, 1.0), (26.0, 0.9), (13.0, 0.7), (35.0, 0.5)]
    )
    def test_temperature_bands(self, value, multiplier):
        assert banded_multiplier(value, TEMPERATURE_BANDS, 0.5) == pytest.approx(multiplier)

    def test_nutrient_balance(self):
        assert nutrient_balance(100, 100, 100) == pytest.approx(1.0)
        assert nutrient_balance(0, 0, 0) == pytest.approx(0.5)
        assert nutrient_balance(300, 0, 0) == pytest.approx(1 - 4 / 9)

    def test_npk_applied_only_when_complete(self):
        partial = YieldConditions(nitrogen=300.0)
        full = YieldConditions(nitrogen=300.0, phosphorus=0.0, potassium=0.0)
        a = estimate_yield(20, GrowthStage.HARVEST_READY, 95.0, partial)
        b = estimate_yield(20, GrowthStage.HARVEST_READY, 95.0, full)
        assert a.expected_yield_g == pytest.approx(160.0)
        assert b.expected_yield_g < a.expected_yield_g

    def test_conditions_from_inputs(self):
        conditions = YieldConditions.from_inputs(
            {"temperature": 21, "soilMoisture": 80, "co2": 5}, {"Nitrogen": 150}
        )
        assert conditions.temperature == pytest.approx(21.0)
        assert conditions.soil_moisture == pytest.approx(80.0)
        assert conditions.nitrogen == pytest.approx(150.0)
        assert conditions.phosphorus is None


def _records(yields, plant_id="p-1", months=None):
    months = months or [1] * len(yields)
    return [HarvestRecord(plant_id, m, y) for m, y in zip(months, yields)]


class TestYieldTrends:
    def test_insufficient_data(self):
        trend = yield_trends(_records([100.0, 110.0]))
        assert trend.trend == Trend.STABLE
        assert trend.recommendations == ("Insufficient historical data for trend analysis",)

    def test_improving(self):
        trend = yield_trends(_records([100.0, 100.0, 100.0, 130.0, 130.0, 130.0]))
        assert trend.trend == Trend.IMPROVING
        assert trend.average_yield_g == pytest.approx(115.0)

    def test_declining(self):
        trend = yield_trends(_records([130.0, 130.0, 130.0, 100.0, 100.0, 100.0]))
        assert trend.trend == Trend.DECLINING

    def test_stable_within_threshold(self):
        trend = yield_trends(_records([100.0, 100.0, 105.0, 105.0, 105.0]))
        assert trend.trend == Trend.STABLE

    def test_low_average_flagged(self):
        trend = yield_trends(_records([30.0, 30.0, 30.0]))
        assert "Average yield below target - implement improvement plan" in trend.recommendations

    def test_filter_by_plant(self):
        records = _records([100.0] * 3, plant_id="a") + _records([10.0] * 3, plant_id="b")
        assert yield_trends(records, plant_id="b").average_yield_g == pytest.approx(10.0)

    def test_seasonal_pattern(self):
        assert detect_seasonal_pattern(_records([50.0, 100.0, 150.0], months=[1, 2, 3]))
        assert not detect_seasonal_pattern(_records([50.0, 150.0], months=[1, 2]))
        assert not detect_seasonal_pattern(_records([100.0, 100.0, 100.0], months=[1, 2, 3]))
