"""State/store layer.

This package is the single source of truth for how classified telemetry
records are merged into live rescuee, rescuer and link state, and how that
state is published to consumers.
"""
