"""
Tests for berry_scorer/scoring/history.py.

What we test
------------
HistoryBuffer:
  - Capacity is fixed; appending past it evicts the oldest sample (FIFO)
    and returns it.
  - samples() filters by plant and stage, oldest first.
  - moving_average() over a window, per plant; None when no data.
  - Concurrent appends never exceed capacity.
  - Capacity below 1 is rejected.

learn_optimal():
  - Static optima at confidence 0.5 below min_samples or with no healthy sample.
  - Mean of healthy readings; unhealthy samples excluded.
  - Confidence grows with sample count, capped at 0.95.
"""

from __future__ import annotations

import threading

import pytest

from berry_scorer.scoring.history import HistoricalSample, HistoryBuffer, learn_optimal
from berry_scorer.taxonomy.enums import GrowthStage, SignalName


def _sample(make_result, plant_id="p-1", temperature=21.0, overall=90.0, stage=None):
    return HistoricalSample.from_result(
        make_result(
            plant_id=plant_id,
            overall=overall,
            readings={SignalName.TEMPERATURE: temperature},
            stage=stage,
        )
    )


class TestHistoryBuffer:
    def test_capacity_below_one_rejected(self):
        with pytest.raises(ValueError):
            HistoryBuffer(capacity=0)

    def test_evicts_oldest_past_capacity(self, make_result):
        buffer = HistoryBuffer(capacity=3)
        for i in range(5):
            buffer.append(_sample(make_result, plant_id=f"p-{i}"))
        assert len(buffer) == 3
        assert [s.plant_id for s in buffer.samples()] == ["p-2", "p-3", "p-4"]

    def test_append_returns_evicted(self, make_result):
        buffer = HistoryBuffer(capacity=2)
        assert buffer.append(_sample(make_result, plant_id="a")) is None
        assert buffer.append(_sample(make_result, plant_id="b")) is None
        evicted = buffer.append(_sample(make_result, plant_id="c"))
        assert evicted is not None
        assert evicted.plant_id == "a"

    def test_sample_keeps_clamped_inputs(self, make_result):
        sample = _sample(make_result, temperature=80.0)
        assert sample.inputs[SignalName.TEMPERATURE] == pytest.approx(50.0)

    def test_filters(self, make_result):
        buffer = HistoryBuffer()
        buffer.append(_sample(make_result, plant_id="a", stage=GrowthStage.FRUITING))
        buffer.append(_sample(make_result, plant_id="b", stage=GrowthStage.FRUITING))
        buffer.append(_sample(make_result, plant_id="a", stage=GrowthStage.FLOWERING))
        assert len(buffer.samples(plant_id="a")) == 2
        assert len(buffer.samples(stage=GrowthStage.FRUITING)) == 2
        assert len(buffer.samples(plant_id="a", stage=GrowthStage.FLOWERING)) == 1

    def test_clear(self, make_result):
        buffer = HistoryBuffer()
        buffer.append(_sample(make_result))
        buffer.clear()
        assert len(buffer) == 0

    def test_moving_average_window(self, make_result):
        buffer = HistoryBuffer()
        for t in (18.0, 20.0, 22.0, 24.0):
            buffer.append(_sample(make_result, temperature=t))
        assert buffer.moving_average(SignalName.TEMPERATURE) == pytest.approx(21.0)
        assert buffer.moving_average(SignalName.TEMPERATURE, window=2) == pytest.approx(23.0)

    def test_moving_average_per_plant(self, make_result):
        buffer = HistoryBuffer()
        buffer.append(_sample(make_result, plant_id="a", temperature=18.0))
        buffer.append(_sample(make_result, plant_id="b", temperature=24.0))
        assert buffer.moving_average(SignalName.TEMPERATURE, plant_id="b") == pytest.approx(24.0)

    def test_moving_average_without_data(self, make_result):
        buffer = HistoryBuffer()
        assert buffer.moving_average(SignalName.PH) is None
        buffer.append(_sample(make_result))
        assert buffer.moving_average(SignalName.PH) is None

    def test_moving_average_bad_window(self, make_result):
        buffer = HistoryBuffer()
        buffer.append(_sample(make_result))
        with pytest.raises(ValueError):
            buffer.moving_average(SignalName.TEMPERATURE, window=0)

    def test_score_moving_average(self, make_result):
        buffer = HistoryBuffer()
        for overall in (60.0, 80.0, 100.0):
            buffer.append(_sample(make_result, overall=overall))
        assert buffer.score_moving_average() == pytest.approx(80.0)
        assert buffer.score_moving_average(window=1) == pytest.approx(100.0)
        assert HistoryBuffer().score_moving_average() is None

    def test_concurrent_appends_respect_capacity(self, make_result):
        buffer = HistoryBuffer(capacity=50)
        sample = _sample(make_result)

        def worker():
            for _ in range(200):
                buffer.append(sample)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(buffer) == 50


class TestLearnOptimal:
    def test_fallback_below_min_samples(self, make_result):
        buffer = HistoryBuffer()
        for _ in range(5):
            buffer.append(_sample(make_result, temperature=19.0))
        learned = learn_optimal(buffer, min_samples=10)
        assert learned.learned is False
        assert learned.confidence == pytest.approx(0.5)
        assert learned.sample_size == 5
        assert learned.optima[SignalName.TEMPERATURE] == pytest.approx(21.0)

    def test_fallback_without_healthy_samples(self, make_result):
        buffer = HistoryBuffer()
        for _ in range(12):
            buffer.append(_sample(make_result, overall=50.0))
        assert learn_optimal(buffer).learned is False

    def test_mean_of_healthy_readings(self, make_result):
        buffer = HistoryBuffer()
        for t in (19.0, 20.0, 21.0, 22.0, 23.0):
            buffer.append(_sample(make_result, temperature=t, overall=90.0))
        for _ in range(5):
            buffer.append(_sample(make_result, temperature=35.0, overall=20.0))
        learned = learn_optimal(buffer, min_samples=10)
        assert learned.learned is True
        assert learned.sample_size == 5
        assert learned.optima[SignalName.TEMPERATURE] == pytest.approx(21.0)
        assert learned.optima[SignalName.PH] == pytest.approx(6.0)
        assert learned.confidence == pytest.approx(0.05)

    def test_stage_filter_and_stage_optima(self, make_result):
        buffer = HistoryBuffer()
        for _ in range(10):
            buffer.append(_sample(make_result, stage=GrowthStage.FLOWERING))
        learned = learn_optimal(buffer, stage=GrowthStage.FRUITING, min_samples=10)
        assert learned.learned is False
        assert learned.optima[SignalName.EC] == pytest.approx(1.8)

    def test_confidence_capped(self, make_result):
        buffer = HistoryBuffer(capacity=200)
        for _ in range(150):
            buffer.append(_sample(make_result))
        assert learn_optimal(buffer).confidence == pytest.approx(0.95)
