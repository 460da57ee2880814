"""
Multi-factor scoring: raw signals → sub-scores → overall score, confidence,
grade, action and rationale.

Modules:
  - ``normalizer``      : reading + target range → 0–100 sub-score.
  - ``cascade``         : ordered (predicate, outcome) rules, first match wins.
  - ``aggregator``      : weighted mean and bounded confidence.
  - ``recommendations`` : grade and ordered rationale strings.
  - ``history``         : bounded FIFO of past results, moving-average learning.
  - ``engine``          : ``create_engine()`` / ``ScoringEngine.score()``.
"""
