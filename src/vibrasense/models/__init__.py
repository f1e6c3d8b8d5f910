"""Data models for wire records and node state."""

from vibrasense.models._base import StateModel, WireRecord, utcnow
from vibrasense.models.nodes import ContactState, ProximityLink, Rescuee, Rescuer, RescuerStatus
from vibrasense.models.records import RecordType, RescueeRecord, RescuerRecord, UnknownRecord

__all__ = [
    "ContactState",
    "ProximityLink",
    "RecordType",
    "Rescuee",
    "RescueeRecord",
    "Rescuer",
    "RescuerRecord",
    "RescuerStatus",
    "StateModel",
    "UnknownRecord",
    "WireRecord",
    "utcnow",
]
