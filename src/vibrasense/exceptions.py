"""Custom exception hierarchy for vibrasense."""

from __future__ import annotations


class VibrasenseError(Exception):
    """Base exception for all vibrasense errors."""


class VibrasenseConfigError(VibrasenseError):
    """Invalid or missing configuration."""


class RecordError(VibrasenseError):
    """A telemetry line could not be turned into a state update.

    Record errors never escape the ingestion engine; they are logged and
    counted, and the offending line leaves the state store untouched.
    """

    def __init__(self, message: str, *, line: str | None = None) -> None:
        self.line = line
        super().__init__(message)


class MissingRequiredFieldError(RecordError):
    """A classified record lacks a field it cannot be stored without (``ID``)."""

    def __init__(self, message: str, *, field: str, record_type: str = "", line: str | None = None) -> None:
        self.field = field
        self.record_type = record_type
        super().__init__(message, line=line)


class TransportError(VibrasenseError):
    """A line source failed to connect or read."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)
