"""
Closed vocabularies and static configuration tables.

Modules
-------
enums  : SignalName, GrowthStage, Priority, Grade, Action, ControlAction.
tables : TargetRange / PhysicalBounds + per-stage range and weight tables.

This package has NO imports from any other ``berry_scorer`` package.
"""
