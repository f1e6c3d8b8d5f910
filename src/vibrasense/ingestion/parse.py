"""Wire line parsing.

A telemetry line is a comma-separated list of ``KEY=VALUE`` tokens::

    TYPE=RESCUEE,ID=R1,BPM=72,AVG=70,CONTACT=OK,EMERGENCY=0

Parsing is lenient: tokens that cannot be split into a key and a value are
dropped and the rest of the line is still used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)

RawRecord = dict[str, str]
"""Field name to trimmed string value, built fresh for every line."""


@dataclass(frozen=True)
class ParsedLine:
    """Result of parsing one line, including what had to be discarded."""

    fields: RawRecord
    dropped_tokens: tuple[str, ...] = field(default_factory=tuple)


def is_blank(line: str) -> bool:
    return not line.strip()


def parse_line_detailed(line: str) -> ParsedLine:
    """Parse *line* and report the tokens that were dropped.

    A token without ``=`` or with an empty key contributes nothing. When a key
    repeats, the last occurrence wins.
    """
    fields: RawRecord = {}
    dropped: list[str] = []
    for token in line.split(","):
        key, sep, value = token.partition("=")
        key = key.strip()
        if not sep or not key:
            dropped.append(token)
            continue
        fields[key] = value.strip()

    if dropped:
        _logger.debug("Dropped %d malformed token(s) from line=%r", len(dropped), line)
    return ParsedLine(fields=fields, dropped_tokens=tuple(dropped))


def parse_line(line: str) -> RawRecord:
    """Parse *line* into a field mapping."""
    return parse_line_detailed(line).fields
