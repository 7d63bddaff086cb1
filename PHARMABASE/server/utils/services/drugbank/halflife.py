from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from PHARMABASE.server.utils.patterns import (
    HALF_LIFE_APPROXIMATE_RE,
    HALF_LIFE_PLUS_MINUS_RE,
    HALF_LIFE_RANGE_RE,
    HALF_LIFE_SINGLE_RE,
)

HOURS_PER_MINUTE = 1.0 / 60.0
HOURS_PER_DAY = 24.0
HOURS_PER_WEEK = 168.0


# -----------------------------------------------------------------------------
def unit_to_hours(unit: str) -> float:
    normalized = unit.lower()
    if normalized.startswith("min"):
        return HOURS_PER_MINUTE
    if normalized.startswith("d"):
        return HOURS_PER_DAY
    if normalized.startswith("w"):
        return HOURS_PER_WEEK
    return 1.0


# -----------------------------------------------------------------------------
def _range_midpoint(match: re.Match[str]) -> float:
    return (float(match.group("low")) + float(match.group("high"))) / 2.0


# -----------------------------------------------------------------------------
def _central_value(match: re.Match[str]) -> float:
    # the midpoint of "a +/- b" is a itself
    return float(match.group("value"))


# ordered: the first rule that matches wins
HALF_LIFE_RULES: tuple[tuple[re.Pattern[str], Callable[[re.Match[str]], float]], ...] = (
    (HALF_LIFE_RANGE_RE, _range_midpoint),
    (HALF_LIFE_PLUS_MINUS_RE, _central_value),
    (HALF_LIFE_SINGLE_RE, _central_value),
    (HALF_LIFE_APPROXIMATE_RE, _central_value),
)


# -----------------------------------------------------------------------------
def parse_half_life_hours(text: Any) -> float | None:
    """Convert a free-text elimination half-life into hours.

    Returns None when the text does not contain a recognizable value; the
    caller stores a null and moves on.
    """
    if not isinstance(text, str):
        return None
    normalized = text.strip()
    if not normalized:
        return None
    for pattern, resolver in HALF_LIFE_RULES:
        match = pattern.search(normalized)
        if match is None:
            continue
        return resolver(match) * unit_to_hours(match.group("unit"))
    return None


__all__ = ["parse_half_life_hours", "unit_to_hours"]
