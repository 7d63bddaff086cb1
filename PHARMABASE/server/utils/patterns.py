from __future__ import annotations

import re

# -----------------------------------------------------------------------------
# Half-life parsing patterns
# -----------------------------------------------------------------------------
HALF_LIFE_NUMBER = r"\d+(?:\.\d+)?"
HALF_LIFE_UNIT = (
    r"(?P<unit>weeks?|wks?|w|days?|d|hours?|hrs?|h|minutes?|mins?)\b"
)

HALF_LIFE_RANGE_RE = re.compile(
    rf"(?P<low>{HALF_LIFE_NUMBER})\s*(?:-|–|—|to)\s*"
    rf"(?P<high>{HALF_LIFE_NUMBER})\s*{HALF_LIFE_UNIT}",
    re.IGNORECASE,
)
HALF_LIFE_PLUS_MINUS_RE = re.compile(
    rf"(?P<value>{HALF_LIFE_NUMBER})\s*(?:±|\+\s*/\s*-|\+-)\s*"
    rf"(?P<spread>{HALF_LIFE_NUMBER})\s*{HALF_LIFE_UNIT}",
    re.IGNORECASE,
)
HALF_LIFE_SINGLE_RE = re.compile(
    rf"(?P<value>{HALF_LIFE_NUMBER})\s*{HALF_LIFE_UNIT}",
    re.IGNORECASE,
)
HALF_LIFE_APPROXIMATE_RE = re.compile(
    rf"(?:approximately|approx\.?|about|around|circa|~)\s*"
    rf"(?P<value>{HALF_LIFE_NUMBER})\s*{HALF_LIFE_UNIT}",
    re.IGNORECASE,
)

# -----------------------------------------------------------------------------
# Full-text query tokens
# -----------------------------------------------------------------------------
FTS_TOKEN_RE = re.compile(r"\w+", re.UNICODE)
