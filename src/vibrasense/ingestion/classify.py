"""Record classification.

Maps a parsed field mapping onto one of the typed record variants in
:mod:`vibrasense.models.records`.
"""

from __future__ import annotations

from vibrasense.exceptions import MissingRequiredFieldError
from vibrasense.ingestion.normalize import safe_str
from vibrasense.ingestion.parse import RawRecord
from vibrasense.models.records import RecordType, RescueeRecord, RescuerRecord, UnknownRecord

_TYPE_FIELD = "TYPE"
_ID_FIELD = "ID"


def record_type(fields: RawRecord) -> str | None:
    """Return the normalized (upper-case) ``TYPE`` of *fields*, if any."""
    value = safe_str(fields.get(_TYPE_FIELD))
    return value.upper() if value else None


def classify(fields: RawRecord) -> RescueeRecord | RescuerRecord | UnknownRecord:
    """Build the typed record for *fields*.

    Raises
    ------
    MissingRequiredFieldError
        When a rescuee or rescuer record carries no usable ``ID``.
    """
    kind = record_type(fields)
    if kind == RecordType.RESCUEE:
        _require_id(fields, kind)
        return RescueeRecord.model_validate(fields)
    if kind == RecordType.RESCUER:
        _require_id(fields, kind)
        return RescuerRecord.model_validate(fields)
    return UnknownRecord.model_validate(fields)


def _require_id(fields: RawRecord, kind: str) -> None:
    if safe_str(fields.get(_ID_FIELD)) is None:
        raise MissingRequiredFieldError(
            f"{kind} record without {_ID_FIELD}",
            field=_ID_FIELD,
            record_type=kind,
        )
