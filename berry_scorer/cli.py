"""
berry-scorer: CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Read and validate inputs.
  4. Score / analyse.
  5. Print JSON (or a short summary) to stdout.

Install and run::

    pip install -e .
    berry-scorer --help
    berry-scorer validate-config
    berry-scorer score request.json
    berry-scorer score-batch requests.json --workers 8
    berry-scorer assess plant.json
    berry-scorer growth-stage --days 75

Request files hold one JSON object (``score``, ``assess``) or a JSON list of
objects (``score-batch``)::

    {"plant_id": "p-1", "stage": "fruiting",
     "signals": {"temperature": 21.5, "humidity": 68, "ph": 6.1}}

``assess`` objects may also carry a ``"context"`` object with
``days_since_planting``, ``berry_count``, ``health_score``, ``time_of_day``,
``nutrients``, ``stress_indicators``, ``berry_metrics`` and
``water_temperature``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="berry-scorer",
    help="Strawberry plant scenario scorer: deterministic multi-factor scoring CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from berry_scorer.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from berry_scorer.utils.logging import configure_logging
    configure_logging(config.logging)


def _create_engine_or_exit(config):
    from berry_scorer.errors import ConfigurationError
    from berry_scorer.scoring.engine import create_engine

    try:
        return create_engine(config)
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


def _read_json_or_exit(path: str) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        typer.echo(f"[ERROR] Input file not found: {file_path}", err=True)
        raise typer.Exit(code=1)
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] Invalid JSON in {file_path}: {exc}", err=True)
        raise typer.Exit(code=1)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and weight tables.

    Exits with code 1 if the config or any weight table fails validation.
    """
    config = _load_config_or_exit(config_path)
    _create_engine_or_exit(config)

    scoring = config.scoring
    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Confidence band:  [{scoring.min_confidence}, {scoring.max_confidence}]")
    typer.echo(f"  Cyclic stages:    {scoring.cyclic_stages}")
    typer.echo(f"  Max workers:      {scoring.max_workers}")
    typer.echo(f"  History capacity: {config.history.capacity}")
    typer.echo(f"  Weight overrides: {', '.join(config.weights) or 'none'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        _echo_json(config.model_dump())

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("score")
def score(
    request_file: str = typer.Argument(..., help="JSON file holding one scoring request."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Score one plant and print the result as JSON."""
    from pydantic import ValidationError

    from berry_scorer.errors import BerryScorerError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    engine = _create_engine_or_exit(config)

    data = _read_json_or_exit(request_file)
    if not isinstance(data, dict):
        typer.echo("[ERROR] Expected a JSON object with one scoring request.", err=True)
        raise typer.Exit(code=1)

    try:
        result = engine.score(data)
    except (BerryScorerError, ValidationError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    _echo_json(result.to_dict())


@app.command("score-batch")
def score_batch(
    requests_file: str = typer.Argument(..., help="JSON file holding a list of requests."),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Thread-pool size (default: scoring.max_workers from config).",
    ),
    summary: bool = typer.Option(
        False,
        "--summary",
        help="Print one line per plant instead of full JSON.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Score a batch of plants concurrently; output keeps input order."""
    from pydantic import ValidationError

    from berry_scorer.errors import BerryScorerError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    engine = _create_engine_or_exit(config)

    data = _read_json_or_exit(requests_file)
    if not isinstance(data, list):
        typer.echo("[ERROR] Expected a JSON list of scoring requests.", err=True)
        raise typer.Exit(code=1)

    try:
        results = engine.score_many(data, max_workers=workers)
    except (BerryScorerError, ValidationError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if not summary:
        _echo_json([r.to_dict() for r in results])
        return

    for r in results:
        typer.echo(
            f"  {r.plant_id:<16} {r.overall_score:6.1f}  {r.grade}  "
            f"conf={r.confidence:.2f}  {r.action}/{r.priority}"
        )
    typer.echo(f"\n[OK] Scored {len(results)} plant(s).")


@app.command("assess")
def assess(
    plant_file: str = typer.Argument(
        ..., help="JSON file holding one plant object or a list of them."
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Thread-pool size for a list of plants.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Score plants and run every advisor; print the combined reports as JSON."""
    from pydantic import ValidationError

    from berry_scorer.errors import BerryScorerError
    from berry_scorer.pipeline.assess import PlantContext, assess_plants

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    engine = _create_engine_or_exit(config)

    data = _read_json_or_exit(plant_file)
    single = isinstance(data, dict)
    items = [data] if single else data
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        typer.echo("[ERROR] Expected a JSON object or a list of objects.", err=True)
        raise typer.Exit(code=1)
    if not all(isinstance(i.get("context") or {}, dict) for i in items):
        typer.echo("[ERROR] A plant's \"context\" must be a JSON object.", err=True)
        raise typer.Exit(code=1)

    try:
        plants = [
            (item, PlantContext(**(item.get("context") or {})))
            for item in items
        ]
        reports = assess_plants(engine, plants, max_workers=workers)
    except (BerryScorerError, ValidationError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    payload = [r.to_dict() for r in reports]
    _echo_json(payload[0] if single else payload)


@app.command("growth-stage")
def growth_stage(
    days: float = typer.Option(..., "--days", help="Days since planting."),
    cyclic: Optional[bool] = typer.Option(
        None,
        "--cyclic/--no-cyclic",
        help="Wrap post-harvest back to germination (default: from config).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Classify the growth stage for a plant age and print the analysis."""
    from berry_scorer.stages.growth import analyze_growth_stage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if cyclic is None:
        cyclic = config.scoring.cyclic_stages
    analysis = analyze_growth_stage(days, cyclic=cyclic)

    typer.echo(f"  Stage:            {analysis.stage}")
    typer.echo(f"  Confidence:       {analysis.confidence:.2f}")
    typer.echo(f"  Progress:         {analysis.progress:.0f}%")
    typer.echo(f"  Next stage:       {analysis.next_stage or '-'}")
    typer.echo(f"  Days to next:     {analysis.days_to_next_stage}")
    typer.echo(f"  Transitioning:    {analysis.is_transitioning}")
    for line in analysis.care_recommendations:
        typer.echo(f"    - {line}")
    if not analysis.valid:
        typer.echo("[WARN] Invalid plant age; treated as day 0.", err=True)


if __name__ == "__main__":
    app()
