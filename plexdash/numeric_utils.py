from __future__ import annotations

import math
from typing import Any


def as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        parsed = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def as_int(value: Any) -> int | None:
    """Truncate toward zero, the way Tautulli's string indices read as integers."""
    parsed = as_float(value)
    if parsed is None:
        return None
    return int(parsed)


def plain_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return repr(value)


def grouped_number(value: float) -> str:
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")
