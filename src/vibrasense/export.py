"""CSV export of a snapshot.

Layout::

    time,type,id,info1,info2
    12:00:01,RESCUEE,R1,72,70,OK,EMERGENCY=0
    12:00:05,RESCUER,H1,TARGET=R1,-65

Rescuee rows carry their own last-seen time; link rows carry the export
time. Unknown readings are written as empty cells.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime

from vibrasense.models._base import utcnow
from vibrasense.state.snapshot import Snapshot

CSV_HEADER = ("time", "type", "id", "info1", "info2")


def _clock_time(value: datetime) -> str:
    return value.strftime("%H:%M:%S")


def _cell(value: int | None) -> str:
    return "" if value is None else str(value)


def export_rows(snapshot: Snapshot, *, now: datetime | None = None) -> list[list[str]]:
    """Rows after the header: rescuees in first-seen order, then links."""
    exported_at = _clock_time(now or utcnow())
    rows: list[list[str]] = []
    for rescuee in snapshot.rescuees.values():
        rows.append(
            [
                _clock_time(rescuee.last_seen),
                "RESCUEE",
                rescuee.id,
                _cell(rescuee.bpm),
                _cell(rescuee.avg),
                rescuee.contact_raw,
                f"EMERGENCY={1 if rescuee.emergency else 0}",
            ]
        )
    for link in snapshot.iter_links():
        rows.append([exported_at, "RESCUER", link.rescuer_id, f"TARGET={link.rescuee_id}", _cell(link.rssi)])
    return rows


def export_csv(snapshot: Snapshot, *, now: datetime | None = None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(export_rows(snapshot, now=now))
    return buffer.getvalue()


def export_filename(now: datetime | None = None) -> str:
    moment = now or utcnow()
    return f"vibrasense_{int(moment.timestamp() * 1000)}.csv"
