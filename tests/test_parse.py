from __future__ import annotations

from vibrasense.ingestion.parse import is_blank, parse_line, parse_line_detailed


def test_parse_line_splits_tokens_and_trims() -> None:
    fields = parse_line(" TYPE = RESCUEE , ID=R1 ,BPM= 72 ")

    assert fields == {"TYPE": "RESCUEE", "ID": "R1", "BPM": "72"}


def test_token_without_equals_is_dropped() -> None:
    parsed = parse_line_detailed("TYPE=RESCUEE,ID=R1,BPM,AVG=75")

    assert parsed.fields == {"TYPE": "RESCUEE", "ID": "R1", "AVG": "75"}
    assert parsed.dropped_tokens == ("BPM",)


def test_token_with_empty_key_is_dropped() -> None:
    assert parse_line("TYPE=RESCUER,=5,ID=H1") == {"TYPE": "RESCUER", "ID": "H1"}


def test_value_keeps_everything_after_first_equals() -> None:
    assert parse_line("NOTE=a=b") == {"NOTE": "a=b"}


def test_empty_value_is_kept_as_empty_string() -> None:
    assert parse_line("TYPE=RESCUER,TARGET=") == {"TYPE": "RESCUER", "TARGET": ""}


def test_duplicate_keys_last_occurrence_wins() -> None:
    assert parse_line("ID=R1,BPM=60,BPM=90")["BPM"] == "90"


def test_is_blank() -> None:
    assert is_blank("")
    assert is_blank("   \t")
    assert not is_blank("TYPE=PING")
