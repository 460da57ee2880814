"""
Shared pytest fixtures for the berry-scorer test suite.

Provides:
  - ``app_config`` / ``engine``: a default-config ``ScoringEngine``, created
    anew for each test so history never leaks between tests.
  - ``healthy_request``: every signal at its default-context optimum.
  - ``make_sub_score`` / ``make_result``: factories for scoring objects.
"""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from berry_scorer.config import AppConfig
from berry_scorer.models.scoring import ScoringResult, SubScore
from berry_scorer.scoring.engine import ScoringEngine, create_engine
from berry_scorer.scoring.normalizer import normalize_signal
from berry_scorer.taxonomy.enums import Action, Grade, GrowthStage, Priority, SignalName
from berry_scorer.taxonomy.tables import DEFAULT_TARGETS, PHYSICAL_BOUNDS


# ── Engine fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Built-in defaults; no TOML or env lookups."""
    return AppConfig()


@pytest.fixture
def engine(app_config: AppConfig) -> ScoringEngine:
    return create_engine(app_config)


@pytest.fixture
def healthy_request() -> dict:
    """Default-context request with every signal exactly on optimal."""
    return {
        "plant_id": "p-1",
        "signals": {
            "temperature": 21.0,
            "humidity": 70.0,
            "soil_moisture": 77.5,
            "light_intensity": 5000.0,
            "ph": 6.0,
            "ec": 1.5,
        },
    }


# ── Object factories ──────────────────────────────────────────────────────────

@pytest.fixture
def make_sub_score() -> Callable[..., SubScore]:
    """Build a default-context ``SubScore`` for one reading."""

    def _make(signal: SignalName, value: float) -> SubScore:
        return normalize_signal(signal, value, DEFAULT_TARGETS[signal], PHYSICAL_BOUNDS[signal])

    return _make


@pytest.fixture
def make_result(make_sub_score) -> Callable[..., ScoringResult]:
    """Build a ``ScoringResult`` directly, bypassing the engine."""

    def _make(
        plant_id: str = "p-1",
        overall: float = 90.0,
        readings: Optional[dict[SignalName, float]] = None,
        stage: Optional[GrowthStage] = None,
    ) -> ScoringResult:
        readings = readings if readings is not None else {SignalName.TEMPERATURE: 21.0}
        return ScoringResult(
            plant_id=plant_id,
            stage=stage,
            overall_score=overall,
            confidence=0.9,
            grade=Grade.A,
            action=Action.MAINTAIN,
            priority=Priority.LOW,
            rationale=("All measured signals on target",),
            sub_scores=tuple(make_sub_score(s, v) for s, v in readings.items()),
        )

    return _make
