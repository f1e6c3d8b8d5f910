"""Ingestion layer.

This package turns raw telemetry lines into typed record variants. Only the
state/store layer is allowed to apply them.
"""

__all__: list[str] = []
