"""Deterministic in-memory state store.

This is the only component allowed to mutate node state. Every upsert is
last-writer-wins per key: a new record for an id replaces the previous entry
in full, and a new observation for a (rescuer, rescuee) pair replaces that
pair's link.

The alert set is kept up to date on every rescuee upsert instead of being
recomputed from the full mapping, so reading it costs O(alerts).

Links are never expired. A rescuer that stops reporting a target keeps its
last link to it until another report for the same pair arrives.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from types import MappingProxyType

from vibrasense.models._base import utcnow
from vibrasense.models.nodes import ProximityLink, Rescuee, Rescuer
from vibrasense.models.records import RescueeRecord, RescuerRecord
from vibrasense.state.alerts import is_alert


class StateStore:
    """Owner of the rescuee, rescuer and link mappings.

    Given the same sequence of records and clock readings the store always
    ends up in the same state. It does no locking: feed it from one task.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._rescuees: dict[str, Rescuee] = {}
        self._rescuers: dict[str, Rescuer] = {}
        self._links: dict[str, list[ProximityLink]] = {}
        self._positions: dict[str, int] = {}
        self._alerting: set[str] = set()
        self._alerts: tuple[Rescuee, ...] | None = ()
        self._revision = 0

    @property
    def revision(self) -> int:
        """Number of mutations applied so far."""
        return self._revision

    @property
    def rescuees(self) -> Mapping[str, Rescuee]:
        return MappingProxyType(self._rescuees)

    @property
    def rescuers(self) -> Mapping[str, Rescuer]:
        return MappingProxyType(self._rescuers)

    @property
    def links(self) -> Mapping[str, list[ProximityLink]]:
        """Links indexed by rescuee id. Treat the lists as read-only."""
        return MappingProxyType(self._links)

    @property
    def alerts(self) -> tuple[Rescuee, ...]:
        """Alerting rescuees in first-seen order."""
        if self._alerts is None:
            ordered = sorted(self._alerting, key=self._positions.__getitem__)
            self._alerts = tuple(self._rescuees[rescuee_id] for rescuee_id in ordered)
        return self._alerts

    def get_rescuee(self, rescuee_id: str) -> Rescuee | None:
        return self._rescuees.get(rescuee_id)

    def get_rescuer(self, rescuer_id: str) -> Rescuer | None:
        return self._rescuers.get(rescuer_id)

    def links_for(self, rescuee_id: str) -> tuple[ProximityLink, ...]:
        return tuple(self._links.get(rescuee_id, ()))

    def upsert_rescuee(self, record: RescueeRecord) -> Rescuee:
        """Replace the entry for ``record.id`` with one built from *record*."""
        rescuee = Rescuee.from_record(record, self._clock())
        self._rescuees[rescuee.id] = rescuee
        self._positions.setdefault(rescuee.id, len(self._positions))
        if is_alert(rescuee):
            self._alerting.add(rescuee.id)
            self._alerts = None
        elif rescuee.id in self._alerting:
            self._alerting.discard(rescuee.id)
            self._alerts = None
        self._revision += 1
        return rescuee

    def upsert_rescuer(self, record: RescuerRecord) -> Rescuer:
        """Replace the entry for ``record.id`` and, with a target, its link.

        A record without ``TARGET`` leaves existing links of this rescuer
        untouched.
        """
        now = self._clock()
        rescuer = Rescuer.from_record(record, now)
        self._rescuers[rescuer.id] = rescuer
        if record.target:
            self._replace_link(ProximityLink.from_record(record, now))
        self._revision += 1
        return rescuer

    def _replace_link(self, link: ProximityLink) -> None:
        existing = self._links.get(link.rescuee_id, [])
        kept = [item for item in existing if item.rescuer_id != link.rescuer_id]
        kept.append(link)
        self._links[link.rescuee_id] = kept

    def clear(self) -> None:
        """Drop all state (used at shutdown and in tests)."""
        self._rescuees.clear()
        self._rescuers.clear()
        self._links.clear()
        self._positions.clear()
        self._alerting.clear()
        self._alerts = ()
        self._revision += 1
