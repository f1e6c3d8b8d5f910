"""Base models shared by wire records and node state.

Wire records inherit from :class:`WireRecord`, which

* is populated only through the upper-case wire keys (``ID``, ``BPM``)
  declared as validation aliases; attribute names are never accepted as
  keys, so ``bpm=80`` on the wire is an unknown field and is ignored,
* drops empty values so the field default is used instead.

Node state inherits from :class:`StateModel`, a frozen model with no extra
keys, so snapshots can hand the same instances to every consumer.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


class WireRecord(BaseModel):
    """Base for records built from one parsed telemetry line."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _clean_wire_values(cls, values: Any) -> Any:
        """Drop empty values so defaults apply."""
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None and value != ""}


class StateModel(BaseModel):
    """Base for immutable node state held by the store."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("last_seen", "observed_at", mode="after", check_fields=False)
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
