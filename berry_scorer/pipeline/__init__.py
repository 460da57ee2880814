"""Per-plant assessment combining the scoring engine with every advisor."""
