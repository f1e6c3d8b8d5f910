"""Typed wire record variants.

Every non-blank line is classified into exactly one of these variants right
after parsing, so nothing past the classifier handles string-keyed maps.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from vibrasense.ingestion.normalize import flag, non_negative_or_none, safe_int, safe_str
from vibrasense.models._base import WireRecord

__all__ = [
    "RecordType",
    "RescueeRecord",
    "RescuerRecord",
    "UnknownRecord",
]


class RecordType(StrEnum):
    RESCUEE = "RESCUEE"
    RESCUER = "RESCUER"


class RescueeRecord(WireRecord):
    """``TYPE=RESCUEE`` telemetry from a beacon.

    Parameters
    ----------
    id : str
        Beacon id.
    bpm : int or None
        Heart rate; ``None`` when absent, non-numeric or negative.
    avg : int or None
        Rolling average heart rate, same rules as ``bpm``.
    contact : str or None
        Contact token as sent (``"OK"`` means skin contact).
    emergency : bool
        ``EMERGENCY=1``.
    rescued : bool
        ``RESCUED=1``.
    """

    id: str = Field(validation_alias="ID")
    bpm: int | None = Field(default=None, validation_alias="BPM")
    avg: int | None = Field(default=None, validation_alias="AVG")
    contact: str | None = Field(default=None, validation_alias="CONTACT")
    emergency: bool = Field(default=False, validation_alias="EMERGENCY")
    rescued: bool = Field(default=False, validation_alias="RESCUED")

    @field_validator("bpm", "avg", mode="before")
    @classmethod
    def _coerce_readings(cls, value: Any) -> int | None:
        return non_negative_or_none(value)

    @field_validator("emergency", "rescued", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return flag(value)


class RescuerRecord(WireRecord):
    """``TYPE=RESCUER`` telemetry from a scanner.

    ``target`` names the beacon the scanner currently hears, ``rssi`` the
    signal strength of that observation (usually negative).
    """

    id: str = Field(validation_alias="ID")
    target: str | None = Field(default=None, validation_alias="TARGET")
    rssi: int | None = Field(default=None, validation_alias="RSSI")
    emergency: bool = Field(default=False, validation_alias="EMERGENCY")
    status: str | None = Field(default=None, validation_alias="STATUS")

    @field_validator("target", mode="before")
    @classmethod
    def _coerce_target(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("rssi", mode="before")
    @classmethod
    def _coerce_rssi(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("emergency", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return flag(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str | None:
        text = safe_str(value)
        return text.upper() if text else None


class UnknownRecord(WireRecord):
    """A line whose ``TYPE`` is missing or not recognised."""

    type: str | None = Field(default=None, validation_alias="TYPE")
