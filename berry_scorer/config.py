"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      : committed static defaults
  2. ``config/local.toml``        : optional local overrides (gitignored)
  3. ``.env``                     : local env overrides (gitignored)
  4. Environment variables        : ``BERRY_SCORER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The scoring engine, the advisors and the CLI receive an ``AppConfig``
instance, never raw dicts or individual env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class ScoringConfig(BaseModel):
    """Normalizer, confidence and concurrency settings.

    Confidence starts at ``max_confidence`` for a complete, in-band request
    and is reduced by the three penalties before clamping to
    ``[min_confidence, max_confidence]``.
    """

    model_config = ConfigDict(frozen=True)

    min_confidence: float = 0.30
    max_confidence: float = 0.95
    out_of_band_penalty: float = 0.20      # per signal, scaled by distance outside band
    invalid_signal_penalty: float = 0.20   # per signal clamped to physical bounds
    incompleteness_penalty: float = 0.40   # scaled by fraction of expected signals missing
    tolerance_fraction: float = 0.25       # share of the half-band scored as "optimal"
    edge_score: float = 70.0               # sub-score at the band edge
    cyclic_stages: bool = True             # post-harvest wraps to germination
    max_workers: int = 4

    @field_validator(
        "out_of_band_penalty", "invalid_signal_penalty",
        "incompleteness_penalty", "tolerance_fraction",
    )
    @classmethod
    def validate_fraction(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Value must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("edge_score")
    @classmethod
    def validate_edge_score(cls, v: float) -> float:
        if not 0.0 < v <= 100.0:
            raise ValueError(f"edge_score must be in (0, 100], got {v}.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_confidence_band(self) -> "ScoringConfig":
        if not 0.0 < self.min_confidence < self.max_confidence < 1.0:
            raise ValueError(
                "Confidence band must satisfy 0 < min_confidence < max_confidence < 1, "
                f"got [{self.min_confidence}, {self.max_confidence}]."
            )
        return self


class HistoryConfig(BaseModel):
    """Ring-buffer size and moving-average learning thresholds."""

    model_config = ConfigDict(frozen=True)

    capacity: int = 1000
    min_samples_to_learn: int = 10
    healthy_score_threshold: float = 80.0

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"History capacity must be >= 1, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    ``weights`` holds optional weight-table overrides keyed by context:
    ``"default"`` or a growth-stage name.  Keys inside each table are signal
    names; they are validated against the closed signal enum when the
    scoring engine is created, not here.
    """

    model_config = ConfigDict(frozen=True)

    scoring: ScoringConfig = ScoringConfig()
    history: HistoryConfig = HistoryConfig()
    logging: LoggingConfig = LoggingConfig()
    weights: dict[str, dict[str, float]] = {}
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply BERRY_SCORER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply BERRY_SCORER_* env vars to the raw config dict.

    Supported overrides:
      BERRY_SCORER_LOG_LEVEL        → raw["logging"]["level"]
      BERRY_SCORER_HISTORY_CAPACITY → raw["history"]["capacity"]
      BERRY_SCORER_MAX_WORKERS      → raw["scoring"]["max_workers"]
      BERRY_SCORER_DEBUG            → raw["debug"]
    """
    if log_level := os.environ.get("BERRY_SCORER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if capacity := os.environ.get("BERRY_SCORER_HISTORY_CAPACITY"):
        raw.setdefault("history", {})["capacity"] = int(capacity)

    if workers := os.environ.get("BERRY_SCORER_MAX_WORKERS"):
        raw.setdefault("scoring", {})["max_workers"] = int(workers)

    if debug := os.environ.get("BERRY_SCORER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        scoring=ScoringConfig(**raw.get("scoring", {})),
        history=HistoryConfig(**raw.get("history", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        weights=raw.get("weights", {}),
        debug=raw.get("debug", project.get("debug", False)),
    )
