"""
Tests for berry_scorer/advisors/health.py.

What we test
------------
1. Classification thresholds (80 / 60 / 40 / 20) and their severities.
2. Confidence bands: 0.95 at the extremes, 0.85 near them, 0.75 mid-range.
3. Out-of-range scores are clamped to 0–100.
4. Missing or non-finite score → UNKNOWN at confidence 0.3.
"""

from __future__ import annotations

import math

import pytest

from berry_scorer.advisors.health import HealthClass, analyze_health, health_confidence
from berry_scorer.taxonomy.enums import Priority


class TestClassification:
    @pytest.mark.parametrize(
        "score, classification, severity",
        [
            (100.0, HealthClass.HEALTHY, Priority.LOW),
            (80.0, HealthClass.HEALTHY, Priority.LOW),
            (79.9, HealthClass.MINOR_STRESS, Priority.MEDIUM),
            (60.0, HealthClass.MINOR_STRESS, Priority.MEDIUM),
            (50.0, HealthClass.MODERATE_STRESS, Priority.HIGH),
            (25.0, HealthClass.SEVERE_STRESS, Priority.CRITICAL),
            (5.0, HealthClass.CRITICAL, Priority.CRITICAL),
        ],
    )
    def test_thresholds(self, score, classification, severity):
        analysis = analyze_health(score)
        assert analysis.classification == classification
        assert analysis.severity == severity
        assert analysis.recommendations

    def test_summary_mentions_score(self):
        assert analyze_health(85.0).summary == "Health score 85.0: plant is healthy"

    def test_clamped(self):
        assert analyze_health(150.0).health_score == pytest.approx(100.0)
        assert analyze_health(-20.0).classification == HealthClass.CRITICAL


class TestConfidence:
    @pytest.mark.parametrize(
        "score, confidence",
        [(95.0, 0.95), (5.0, 0.95), (85.0, 0.85), (25.0, 0.85), (50.0, 0.75), (70.0, 0.75)],
    )
    def test_bands(self, score, confidence):
        assert health_confidence(score) == pytest.approx(confidence)


class TestUnknown:
    @pytest.mark.parametrize("score", [None, math.nan, math.inf, "healthy"])
    def test_unusable_score(self, score):
        analysis = analyze_health(score)
        assert analysis.classification == HealthClass.UNKNOWN
        assert analysis.health_score is None
        assert analysis.confidence == pytest.approx(0.3)
        assert analysis.severity == Priority.HIGH
