"""Line transports.

Producers of raw telemetry lines (TCP, MQTT) and the feed that serializes
them into the ingestion engine.
"""

__all__: list[str] = []
