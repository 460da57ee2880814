"""
Rule cascade: ordered (predicate, outcome) pairs, first match wins.

A ``RuleCascade`` is built once (at engine or advisor construction) and then
evaluated against a plain context mapping.  Evaluation is deterministic: the
same context always selects the same rule and renders the same reasoning.

Example::

    cascade = RuleCascade(
        rules=[
            Rule("too_hot", lambda c: c["temp"] > c["max"],
                 RuleOutcome(ControlAction.DECREASE, Priority.HIGH,
                             "Temperature {temp}°C exceeds maximum {max}°C")),
        ],
        default=RuleOutcome(ControlAction.MAINTAIN, Priority.LOW, "Temperature on target"),
    )
    result = cascade.evaluate({"temp": 27, "max": 24})
    result.reasoning   # "Temperature 27°C exceeds maximum 24°C"

Reasoning templates use ``str.format`` fields filled from the context; a
template referencing a key the context lacks raises ``KeyError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from berry_scorer.taxonomy.enums import Priority

DEFAULT_RULE_NAME = "default"


@dataclass(frozen=True)
class RuleOutcome:
    """What a rule yields when it matches.

    Attributes:
        action:   Action label (an ``Action``/``ControlAction`` member or any
                  string enum the caller uses).
        priority: Urgency tier.
        template: ``str.format`` template rendered with the context.
    """

    action: str
    priority: Priority
    template: str


@dataclass(frozen=True)
class Rule:
    """One ordered rule: ``predicate(context) → outcome``."""

    name: str
    predicate: Callable[[Mapping[str, Any]], bool]
    outcome: RuleOutcome


@dataclass(frozen=True)
class CascadeResult:
    """The selected outcome with its rendered reasoning.

    Attributes:
        rule:      Name of the matching rule, or ``"default"``.
        action:    Action label from the outcome.
        priority:  Priority from the outcome.
        reasoning: Rendered template.
    """

    rule: str
    action: str
    priority: Priority
    reasoning: str

    @property
    def matched(self) -> bool:
        """True when a rule matched (i.e. the default did not apply)."""
        return self.rule != DEFAULT_RULE_NAME


class RuleCascade:
    """Ordered rule list evaluated until the first match.

    Args:
        rules:   Rules in evaluation order.  Names must be unique.
        default: Outcome when no rule matches.
    """

    def __init__(self, rules: Sequence[Rule], default: RuleOutcome) -> None:
        names = [rule.name for rule in rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Rule names must be unique, duplicated: {duplicates}.")
        if DEFAULT_RULE_NAME in names:
            raise ValueError(f"'{DEFAULT_RULE_NAME}' is reserved for the fallback outcome.")
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._default = default

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def evaluate(self, context: Mapping[str, Any]) -> CascadeResult:
        """Return the first matching rule's outcome, else the default."""
        for rule in self._rules:
            if rule.predicate(context):
                return _render(rule.name, rule.outcome, context)
        return _render(DEFAULT_RULE_NAME, self._default, context)


def _render(name: str, outcome: RuleOutcome, context: Mapping[str, Any]) -> CascadeResult:
    return CascadeResult(
        rule=name,
        action=outcome.action,
        priority=outcome.priority,
        reasoning=outcome.template.format(**context),
    )
