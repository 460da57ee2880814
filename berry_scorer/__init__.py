"""
berry-scorer: deterministic multi-factor scoring for strawberry plant monitoring.

Packages
--------
taxonomy  : closed enums (signals, stages, grades, priorities) and static range tables.
scoring   : normalizer, rule cascade, aggregator, recommendations, history, engine.
stages    : growth-stage classification and progression tracking.
advisors  : health, climate, nutrient, yield and berry-quality advisors.
pipeline  : per-plant assessment combining the engine and all advisors.
"""

__version__ = "0.1.0"
