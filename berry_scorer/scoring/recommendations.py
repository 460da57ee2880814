"""
Recommendation generator: cascade outcome + sub-scores → ordered rationale.

Pure functions, no I/O.  Ordering is significant:

  1. The cascade's own reasoning (why this action was chosen).
  2. Per-signal issues, most urgent first (critical → low), ties broken by
     lower sub-score first, then by signal order.
  3. Notes on expected signals that had no usable reading.
  4. Notes on ignored input (unrecognized signal names, unknown stage).

Per-signal issue tiers
----------------------
    critical : sub-score < 40 (far outside the target band)
    high     : outside the target band, or reading outside physical bounds
    low      : inside the band but away from optimal (sub-score < 100)
"""

from __future__ import annotations

from typing import Optional, Sequence

from berry_scorer.models.scoring import SubScore
from berry_scorer.scoring.cascade import CascadeResult
from berry_scorer.taxonomy.enums import Grade, Priority, SignalName

# Grade thresholds, evaluated top-down.
_GRADE_THRESHOLDS: tuple[tuple[float, Grade], ...] = (
    (90.0, Grade.A),
    (80.0, Grade.B),
    (70.0, Grade.C),
    (60.0, Grade.D),
)

CRITICAL_SUB_SCORE = 40.0

SIGNAL_LABELS: dict[SignalName, tuple[str, str]] = {
    SignalName.TEMPERATURE:     ("Temperature", "°C"),
    SignalName.HUMIDITY:        ("Humidity", "%"),
    SignalName.SOIL_MOISTURE:   ("Soil moisture", "%"),
    SignalName.LIGHT_INTENSITY: ("Light intensity", " lux"),
    SignalName.PH:              ("pH", ""),
    SignalName.EC:              ("EC", " mS/cm"),
}


def grade_for(score: float) -> Grade:
    """Letter grade: A ≥ 90, B ≥ 80, C ≥ 70, D ≥ 60, else F."""
    for threshold, grade in _GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.F


def describe(signal: SignalName, value: float) -> str:
    """``"Temperature 27°C"``-style label for a reading."""
    label, unit = SIGNAL_LABELS[signal]
    return f"{label} {value:g}{unit}"


def signal_issue(sub: SubScore) -> Optional[tuple[Priority, str]]:
    """Classify one sub-score into an (urgency, message) pair, or ``None`` if on target."""
    label, unit = SIGNAL_LABELS[sub.signal]

    if not sub.valid:
        return (
            Priority.HIGH,
            f"{label} reading {sub.raw_value:g}{unit} is physically implausible; "
            f"clamped to {sub.value:g}{unit}, check the sensor",
        )
    if sub.score < CRITICAL_SUB_SCORE:
        side = "above" if sub.deviation > 0 else "below"
        return (
            Priority.CRITICAL,
            f"{describe(sub.signal, sub.value)} is far {side} target range "
            f"{sub.target_min:g}-{sub.target_max:g}{unit}",
        )
    if sub.value > sub.target_max:
        return (
            Priority.HIGH,
            f"{describe(sub.signal, sub.value)} exceeds maximum {sub.target_max:g}{unit}",
        )
    if sub.value < sub.target_min:
        return (
            Priority.HIGH,
            f"{describe(sub.signal, sub.value)} below minimum {sub.target_min:g}{unit}",
        )
    if sub.score < 100.0:
        side = "above" if sub.deviation > 0 else "below"
        return (
            Priority.LOW,
            f"{describe(sub.signal, sub.value)} slightly {side} optimal {sub.target_optimal:g}{unit}",
        )
    return None


def build_rationale(
    outcome: CascadeResult,
    sub_scores: Sequence[SubScore],
    missing: Sequence[SignalName] = (),
    ignored_signals: Sequence[str] = (),
    stage_note: Optional[str] = None,
    notes: Sequence[str] = (),
) -> list[str]:
    """Assemble the ordered rationale for one scoring result.

    Args:
        outcome:         Cascade result chosen for the plant.
        sub_scores:      Sub-scores of supplied signals.
        missing:         Expected signals without a usable reading.
        ignored_signals: Input keys that were not recognized signal names.
        stage_note:      Optional note about the growth-stage context.
        notes:           Notes about malformed request fields.

    Returns:
        Non-empty list of strings, most urgent first.
    """
    reasons: list[str] = [outcome.reasoning]

    order = {signal: i for i, signal in enumerate(SignalName)}
    issues: list[tuple[int, float, int, str]] = []
    for sub in sub_scores:
        issue = signal_issue(sub)
        if issue is None:
            continue
        priority, message = issue
        issues.append((-priority.rank, sub.score, order[sub.signal], message))
    reasons.extend(message for *_, message in sorted(issues))

    for signal in missing:
        label, _ = SIGNAL_LABELS[signal]
        reasons.append(f"No usable reading for {label}; confidence reduced")

    for name in ignored_signals:
        reasons.append(f"Ignored unrecognized signal '{name}'")

    if stage_note:
        reasons.append(stage_note)
    reasons.extend(notes)

    return reasons
