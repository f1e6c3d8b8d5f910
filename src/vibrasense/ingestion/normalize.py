"""Normalization helpers.

Centralizes defensive parsing of loosely-typed wire values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def non_negative_or_none(value: Any) -> int | None:
    """Parse a reading that cannot be negative; negatives are unknown."""
    parsed = safe_int(value)
    if parsed is None or parsed < 0:
        return None
    return parsed


def flag(value: Any) -> bool:
    """Wire booleans are true only for the exact token ``"1"``."""
    return value == "1"
