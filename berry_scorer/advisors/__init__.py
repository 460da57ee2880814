"""
Domain advisors built from the scoring primitives.

Each advisor is a pure function of its inputs:
  - ``health``         : supplied health score → classification and care steps.
  - ``climate``        : sensor readings → per-parameter control commands.
  - ``nutrients``      : nutrient levels → adjustments, pH and EC targets.
  - ``yield_estimate`` : conditions → yield estimate, range and trend.
  - ``quality``        : berry metrics → grade and harvest timing.
"""
