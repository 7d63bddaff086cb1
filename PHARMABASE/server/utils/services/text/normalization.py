from __future__ import annotations

import re
from typing import Any

import pandas as pd

LIKE_ESCAPE_CHAR = "\\"


# -----------------------------------------------------------------------------
def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


# -----------------------------------------------------------------------------
def normalize_whitespace(value: str) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


# -----------------------------------------------------------------------------
def normalize_entity_name(value: str) -> str:
    """Lowercase, treat hyphens as spaces and collapse whitespace.

    Gene/protein nomenclature writes "glucagon-like peptide 1 receptor" where
    DrugBank stores "Glucagon like peptide 1 receptor"; both normalize to the
    same string.
    """
    if not value:
        return ""
    return normalize_whitespace(value.replace("-", " ").lower())


# -----------------------------------------------------------------------------
def escape_like_pattern(value: str) -> str:
    escaped = value.replace(LIKE_ESCAPE_CHAR, LIKE_ESCAPE_CHAR * 2)
    escaped = escaped.replace("%", f"{LIKE_ESCAPE_CHAR}%")
    return escaped.replace("_", f"{LIKE_ESCAPE_CHAR}_")


# -----------------------------------------------------------------------------
def build_substring_pattern(value: str) -> str:
    return f"%{escape_like_pattern(value)}%"


__all__ = [
    "LIKE_ESCAPE_CHAR",
    "build_substring_pattern",
    "coerce_text",
    "escape_like_pattern",
    "normalize_entity_name",
    "normalize_whitespace",
]
