"""
Exceptions raised at the scoring-call boundary.

Only two conditions are errors:
  - ``InvalidInputError``:  a required identifying field (the plant id) is absent.
  - ``ConfigurationError``: a weight table is malformed (unknown key, negative
    weight, or zero total weight for the active signal set).

Everything else (out-of-range readings, missing optional signals, unknown
stage names) is absorbed into a lower confidence and extra rationale lines.
"""

from __future__ import annotations

from typing import Optional


class BerryScorerError(Exception):
    """Base class for all berry-scorer errors."""


class InvalidInputError(BerryScorerError, ValueError):
    """Raised when a scoring request lacks a required identifying field.

    Attributes:
        field: Name of the missing or blank field.
    """

    def __init__(self, field: str, detail: Optional[str] = None) -> None:
        self.field = field
        message = f"Scoring request is missing required field '{field}'."
        if detail:
            message = f"{message}  {detail}"
        super().__init__(message)


class ConfigurationError(BerryScorerError, ValueError):
    """Raised when a weight table or scoring configuration is unusable.

    Attributes:
        field: Config key or signal name that failed validation.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")
