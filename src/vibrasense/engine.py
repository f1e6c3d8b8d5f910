"""Ingestion engine.

Runs one telemetry line through the whole pipeline::

    raw line -> parse -> classify -> store upsert -> alerts -> publish

Each line is processed to completion before the next one is accepted. Bad
input never raises out of :meth:`IngestionEngine.process_line`; it degrades
to "no state change for this line".

Snapshots are captured only when something looks at them: after every line
while an observer is subscribed, otherwise on the first read of
:attr:`IngestionEngine.snapshot` after a change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError

from vibrasense.exceptions import RecordError
from vibrasense.ingestion.classify import classify
from vibrasense.ingestion.parse import is_blank, parse_line_detailed
from vibrasense.models._base import utcnow
from vibrasense.models.records import RescueeRecord, RescuerRecord, UnknownRecord
from vibrasense.state.snapshot import Snapshot, SnapshotEmitter
from vibrasense.state.store import StateStore

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestionStats:
    """Running counters for processed lines."""

    lines: int = 0
    blank: int = 0
    rescuee: int = 0
    rescuer: int = 0
    unknown: int = 0
    rejected: int = 0
    dropped_tokens: int = 0


class IngestionEngine:
    """Single-threaded line processor bound to one store and one emitter."""

    def __init__(
        self,
        *,
        store: StateStore | None = None,
        emitter: SnapshotEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._clock = clock
        self.store = store if store is not None else StateStore(clock=clock)
        self.emitter = emitter if emitter is not None else SnapshotEmitter()
        self.stats = IngestionStats()
        self._snapshot: Snapshot | None = None
        self._updated_at: datetime | None = None

    @property
    def snapshot(self) -> Snapshot:
        """State after the last processed line."""
        if self._snapshot is None or self._snapshot.revision != self.store.revision:
            self._snapshot = Snapshot.capture(self.store, created_at=self._updated_at)
        return self._snapshot

    def process_line(self, line: str) -> bool:
        """Ingest one line and publish the resulting snapshot to observers.

        Returns ``False`` for blank lines, which produce no record and no
        snapshot at all.
        """
        if is_blank(line):
            self.stats.blank += 1
            return False

        self.stats.lines += 1
        self._apply(line.strip())

        self._updated_at = self._clock()
        self._snapshot = None
        if self.emitter.observer_count:
            self.emitter.publish(self.snapshot)
        return True

    def process_lines(self, lines: Iterable[str]) -> Snapshot:
        for line in lines:
            self.process_line(line)
        return self.snapshot

    def _apply(self, line: str) -> None:
        parsed = parse_line_detailed(line)
        self.stats.dropped_tokens += len(parsed.dropped_tokens)

        try:
            record = classify(parsed.fields)
        except RecordError as exc:
            self.stats.rejected += 1
            _logger.warning("Rejected record: %s line=%r", exc, line)
            return
        except ValidationError as exc:
            self.stats.rejected += 1
            _logger.warning("Rejected record: %d validation error(s) line=%r", exc.error_count(), line)
            return

        if isinstance(record, RescueeRecord):
            self.stats.rescuee += 1
            self.store.upsert_rescuee(record)
        elif isinstance(record, RescuerRecord):
            self.stats.rescuer += 1
            self.store.upsert_rescuer(record)
        elif isinstance(record, UnknownRecord):
            self.stats.unknown += 1
            _logger.warning("Ignoring record with unknown TYPE=%r line=%r", record.type, line)
