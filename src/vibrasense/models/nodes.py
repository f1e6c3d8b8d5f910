"""Live node state: rescuees, rescuers and proximity links."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from vibrasense.models._base import StateModel
from vibrasense.models.records import RescueeRecord, RescuerRecord

__all__ = [
    "ContactState",
    "ProximityLink",
    "Rescuee",
    "Rescuer",
    "RescuerStatus",
]

# What the dashboard showed when a beacon sent no CONTACT field.
_NO_CONTACT_TOKEN = "?"


class ContactState(StrEnum):
    OK = "OK"
    LOST = "LOST"

    @classmethod
    def from_token(cls, token: str | None) -> ContactState:
        """Only the literal ``"OK"`` means contact; anything else is lost."""
        return cls.OK if token == "OK" else cls.LOST


class RescuerStatus(StrEnum):
    READY = "READY"
    ENGAGED = "ENGAGED"


class Rescuee(StateModel):
    """Latest known state of one beacon."""

    id: str
    bpm: int | None = None
    avg: int | None = None
    contact: ContactState = ContactState.LOST
    contact_raw: str = _NO_CONTACT_TOKEN
    emergency: bool = False
    rescued: bool = False
    last_seen: datetime

    @classmethod
    def from_record(cls, record: RescueeRecord, seen_at: datetime) -> Rescuee:
        return cls(
            id=record.id,
            bpm=record.bpm,
            avg=record.avg,
            contact=ContactState.from_token(record.contact),
            contact_raw=record.contact if record.contact is not None else _NO_CONTACT_TOKEN,
            emergency=record.emergency,
            rescued=record.rescued,
            last_seen=seen_at,
        )


class Rescuer(StateModel):
    """Latest known state of one scanner."""

    id: str
    status: RescuerStatus = RescuerStatus.READY
    target: str | None = None
    last_seen: datetime

    @classmethod
    def from_record(cls, record: RescuerRecord, seen_at: datetime) -> Rescuer:
        return cls(
            id=record.id,
            status=_resolve_status(record),
            target=record.target,
            last_seen=seen_at,
        )


def _resolve_status(record: RescuerRecord) -> RescuerStatus:
    # An explicit STATUS wins; unrecognised tokens fall back to inference.
    if record.status is not None:
        try:
            return RescuerStatus(record.status)
        except ValueError:
            pass
    return RescuerStatus.ENGAGED if record.target else RescuerStatus.READY


class ProximityLink(StateModel):
    """A rescuer hearing a rescuee, as of the rescuer's latest report for that pair."""

    rescuer_id: str
    rescuee_id: str
    rssi: int | None = None
    emergency: bool = False
    observed_at: datetime

    @classmethod
    def from_record(cls, record: RescuerRecord, observed_at: datetime) -> ProximityLink:
        if not record.target:
            raise ValueError("rescuer record has no target")
        return cls(
            rescuer_id=record.id,
            rescuee_id=record.target,
            rssi=record.rssi,
            emergency=record.emergency,
            observed_at=observed_at,
        )
