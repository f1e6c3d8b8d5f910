"""Alert evaluation.

Alerts are derived, never stored: a rescuee is in the alert set exactly when
it reports an emergency or has lost skin contact.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum

from vibrasense.models.nodes import ContactState, Rescuee


class AlertKind(StrEnum):
    EMERGENCY = "EMERGENCY"
    LOST_CONTACT = "LOST_CONTACT"


def alert_kinds(rescuee: Rescuee) -> tuple[AlertKind, ...]:
    """Reasons *rescuee* is alerting, emergency first."""
    kinds: list[AlertKind] = []
    if rescuee.emergency:
        kinds.append(AlertKind.EMERGENCY)
    if rescuee.contact is not ContactState.OK:
        kinds.append(AlertKind.LOST_CONTACT)
    return tuple(kinds)


def is_alert(rescuee: Rescuee) -> bool:
    return rescuee.emergency or rescuee.contact is not ContactState.OK


def evaluate_alerts(rescuees: Mapping[str, Rescuee] | Iterable[Rescuee]) -> tuple[Rescuee, ...]:
    """Return the alerting rescuees in first-seen order."""
    values = rescuees.values() if isinstance(rescuees, Mapping) else rescuees
    return tuple(rescuee for rescuee in values if is_alert(rescuee))
