"""Immutable state snapshots and observer fan-out."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from vibrasense.models._base import utcnow
from vibrasense.models.nodes import ProximityLink, Rescuee, Rescuer
from vibrasense.state.alerts import alert_kinds
from vibrasense.state.store import StateStore

_logger = logging.getLogger(__name__)

SnapshotObserver = Callable[["Snapshot"], None]


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of the store plus the alert set derived from it.

    The mappings are detached copies: later store mutations never show up in
    a snapshot that has already been published.
    """

    rescuees: Mapping[str, Rescuee] = field(default_factory=_empty_mapping)
    rescuers: Mapping[str, Rescuer] = field(default_factory=_empty_mapping)
    links: Mapping[str, tuple[ProximityLink, ...]] = field(default_factory=_empty_mapping)
    alerts: tuple[Rescuee, ...] = ()
    revision: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def capture(cls, store: StateStore, *, created_at: datetime | None = None) -> Snapshot:
        return cls(
            rescuees=MappingProxyType(dict(store.rescuees)),
            rescuers=MappingProxyType(dict(store.rescuers)),
            links=MappingProxyType({key: tuple(items) for key, items in store.links.items()}),
            alerts=store.alerts,
            revision=store.revision,
            created_at=created_at or utcnow(),
        )

    def iter_links(self) -> list[ProximityLink]:
        """All links, grouped by rescuee in mapping order."""
        return [link for items in self.links.values() for link in items]

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "revision": self.revision,
            "created_at": self.created_at.isoformat(),
            "rescuees": [r.model_dump(mode="json") for r in self.rescuees.values()],
            "rescuers": [r.model_dump(mode="json") for r in self.rescuers.values()],
            "links": {
                rescuee_id: [link.model_dump(mode="json") for link in items]
                for rescuee_id, items in self.links.items()
            },
            "alerts": [
                {"id": r.id, "kinds": [str(kind) for kind in alert_kinds(r)]} for r in self.alerts
            ],
        }


class SnapshotEmitter:
    """Publishes snapshots to observers without letting any of them fail ingestion."""

    def __init__(self) -> None:
        self._observers: list[SnapshotObserver] = []
        self._latest: Snapshot = Snapshot()

    @property
    def latest(self) -> Snapshot:
        return self._latest

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """Register *observer*; returns a callable that unregisters it."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def publish(self, snapshot: Snapshot) -> None:
        self._latest = snapshot
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                _logger.debug("Snapshot observer %r failed", observer, exc_info=True)
