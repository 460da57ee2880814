"""Growth-stage state machine: days since planting → stage, progress, next stage."""
