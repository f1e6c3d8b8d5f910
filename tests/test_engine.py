from __future__ import annotations

from datetime import UTC, datetime

import pytest

from vibrasense.engine import IngestionEngine
from vibrasense.models.nodes import ContactState
from vibrasense.state.alerts import evaluate_alerts
from vibrasense.state.snapshot import Snapshot
from vibrasense.state.store import StateStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _engine() -> IngestionEngine:
    return IngestionEngine(clock=_dt)


def test_end_to_end_link_replacement() -> None:
    engine = _engine()

    engine.process_line("TYPE=RESCUEE,ID=R1,BPM=72,AVG=70,CONTACT=OK,EMERGENCY=0")
    engine.process_line("TYPE=RESCUER,ID=H1,TARGET=R1,RSSI=-65")

    snapshot = engine.snapshot
    assert snapshot.rescuees["R1"].bpm == 72
    assert [(link.rescuer_id, link.rssi) for link in snapshot.links["R1"]] == [("H1", -65)]

    engine.process_line("TYPE=RESCUER,ID=H1,TARGET=R1,RSSI=-50")

    assert [(link.rescuer_id, link.rssi) for link in engine.snapshot.links["R1"]] == [("H1", -50)]


def test_rescuee_fields_reflect_input_exactly() -> None:
    engine = _engine()

    engine.process_line("TYPE=RESCUEE,ID=R1,AVG=75,CONTACT=OK,RESCUED=1")

    rescuee = engine.snapshot.rescuees["R1"]
    assert rescuee.bpm is None
    assert rescuee.avg == 75
    assert rescuee.rescued is True
    assert rescuee.emergency is False
    assert rescuee.last_seen == _dt()


def test_malformed_token_still_produces_rescuee() -> None:
    engine = _engine()

    engine.process_line("TYPE=RESCUEE,ID=R1,BPM,AVG=75")

    assert engine.snapshot.rescuees["R1"].bpm is None
    assert engine.snapshot.rescuees["R1"].avg == 75
    assert engine.stats.dropped_tokens == 1


@pytest.mark.parametrize("extra", ["raw=x", "kind=beacon", "type=PING", "id=R9", "Bpm=10"])
def test_unrecognised_field_names_do_not_reject_rescuee(extra: str) -> None:
    engine = _engine()

    engine.process_line(f"TYPE=RESCUEE,ID=R1,BPM=72,{extra}")

    assert list(engine.snapshot.rescuees) == ["R1"]
    assert engine.snapshot.rescuees["R1"].bpm == 72
    assert engine.stats.rescuee == 1
    assert engine.stats.rejected == 0


def test_lowercase_keys_are_not_wire_fields() -> None:
    engine = _engine()

    engine.process_line("TYPE=RESCUEE,ID=R1,bpm=80,emergency=1,contact=OK,rescued=1")
    engine.process_line("TYPE=RESCUER,ID=H1,target=R9,RSSI=-50,status=ready")

    rescuee = engine.snapshot.rescuees["R1"]
    assert rescuee.bpm is None
    assert rescuee.emergency is False
    assert rescuee.rescued is False
    assert rescuee.contact is ContactState.LOST
    assert engine.snapshot.rescuers["H1"].target is None
    assert dict(engine.snapshot.links) == {}


@pytest.mark.parametrize("line", ["TYPE=PING", "ID=R1,BPM=70", "TYPE=RESCUEE,BPM=70", "garbage", ",,,"])
def test_unusable_lines_leave_state_unchanged(line: str) -> None:
    engine = _engine()
    engine.process_line("TYPE=RESCUEE,ID=R1,BPM=72")
    engine.process_line("TYPE=RESCUER,ID=H1,TARGET=R1,RSSI=-65")
    before = engine.snapshot

    assert engine.process_line(line) is True

    after = engine.snapshot
    assert after.revision == before.revision
    assert dict(after.rescuees) == dict(before.rescuees)
    assert dict(after.rescuers) == dict(before.rescuers)
    assert dict(after.links) == dict(before.links)


def test_unknown_and_rejected_are_counted_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    engine = _engine()

    with caplog.at_level("WARNING", logger="vibrasense.engine"):
        engine.process_line("TYPE=PING")
        engine.process_line("TYPE=RESCUER,TARGET=R1")

    assert engine.stats.unknown == 1
    assert engine.stats.rejected == 1
    assert "unknown TYPE='PING'" in caplog.text
    assert "Rejected record" in caplog.text


def test_blank_lines_produce_no_snapshot() -> None:
    engine = _engine()
    published: list[Snapshot] = []
    engine.emitter.subscribe(published.append)

    assert engine.process_line("   ") is False
    assert published == []
    assert engine.stats.blank == 1
    assert engine.stats.lines == 0


def test_every_processed_line_publishes() -> None:
    engine = _engine()
    published: list[Snapshot] = []
    engine.emitter.subscribe(published.append)

    engine.process_lines(["TYPE=RESCUEE,ID=R1", "TYPE=PING", "", "TYPE=RESCUER,ID=H1"])

    assert len(published) == 3
    assert [snapshot.revision for snapshot in published] == [1, 1, 2]
    assert engine.snapshot is published[-1]
    assert engine.emitter.latest is published[-1]


def test_snapshots_are_captured_on_demand_without_observers(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[int] = []
    capture = Snapshot.capture

    def _counting_capture(cls: type[Snapshot], store: StateStore, *, created_at: datetime | None = None) -> Snapshot:
        captured.append(store.revision)
        return capture(store, created_at=created_at)

    monkeypatch.setattr(Snapshot, "capture", classmethod(_counting_capture))
    engine = _engine()

    engine.process_lines(f"TYPE=RESCUEE,ID=R{index},CONTACT=OK" for index in range(500))

    assert captured == [500]
    assert engine.snapshot is engine.snapshot
    assert len(captured) == 1
    assert engine.snapshot.created_at == _dt()

    received: list[Snapshot] = []
    engine.emitter.subscribe(received.append)
    engine.process_lines(["TYPE=RESCUEE,ID=R1,EMERGENCY=1", "TYPE=PING"])

    assert captured == [500, 501, 501]
    assert [r.id for r in received[-1].alerts] == ["R1"]


def test_snapshot_follows_store_mutations_made_outside_the_engine() -> None:
    engine = _engine()
    engine.process_line("TYPE=RESCUEE,ID=R1")
    assert list(engine.snapshot.rescuees) == ["R1"]

    engine.store.clear()

    assert not engine.snapshot.rescuees
    assert engine.snapshot.alerts == ()


def test_alert_clears_when_emergency_resolved() -> None:
    engine = _engine()

    engine.process_line("TYPE=RESCUEE,ID=R1,CONTACT=OK,EMERGENCY=1")
    assert [r.id for r in engine.snapshot.alerts] == ["R1"]

    engine.process_line("TYPE=RESCUEE,ID=R1,CONTACT=OK,EMERGENCY=0")
    assert engine.snapshot.alerts == ()


def test_alerts_match_full_evaluation_over_a_mixed_stream() -> None:
    engine = _engine()
    lines = [
        "TYPE=RESCUEE,ID=R1,CONTACT=OK",
        "TYPE=RESCUEE,ID=R2,CONTACT=LOST",
        "TYPE=RESCUEE,ID=R3,CONTACT=OK,EMERGENCY=1",
        "TYPE=RESCUEE,ID=R1,CONTACT=OK,EMERGENCY=1",
        "TYPE=RESCUEE,ID=R3,CONTACT=OK",
        "TYPE=RESCUEE,ID=R4",
        "TYPE=RESCUEE,ID=R2,CONTACT=OK",
    ]

    for line in lines:
        engine.process_line(line)
        snapshot = engine.snapshot
        assert snapshot.alerts == evaluate_alerts(snapshot.rescuees)

    assert [r.id for r in engine.snapshot.alerts] == ["R1", "R4"]


def test_repeated_pair_never_duplicates() -> None:
    engine = _engine()

    snapshot = engine.process_lines(["TYPE=RESCUER,ID=H1,TARGET=R1,RSSI=-60"] * 5)

    assert len(snapshot.links["R1"]) == 1


def test_failing_observer_does_not_break_ingestion() -> None:
    engine = _engine()

    def _broken(_snapshot: Snapshot) -> None:
        raise ValueError("boom")

    engine.emitter.subscribe(_broken)
    engine.process_line("TYPE=RESCUEE,ID=R1")
    engine.process_line("TYPE=RESCUEE,ID=R2")

    assert list(engine.snapshot.rescuees) == ["R1", "R2"]
