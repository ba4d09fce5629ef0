"""CSV column and cell normalization — BOM, stray spaces, list and number cells."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff)
    - Replaces runs of spaces / non-breaking spaces / dashes with one underscore
    - Lowercases
    - Strips anything that is not alphanumeric or underscore
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0\-]+", "_", name)
    name = name.lower()
    return re.sub(r"[^\w]", "", name, flags=re.UNICODE)


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def parse_list(raw: str | None) -> list[str]:
    """Split 'Guangdong; Zhejiang | Jiangsu' into its items.

    Commas are NOT separators here: a single item may itself be
    'Province/City' or 'Province, City'.
    """
    if not raw:
        return []
    return [p.strip() for p in re.split(r"[;|]+", raw) if p.strip()]


def parse_id_list(raw: str | None) -> list[int]:
    if not raw:
        return []
    ids = []
    for part in re.split(r"[,;|\s]+", raw.strip()):
        if part.isdigit():
            ids.append(int(part))
    return ids


def parse_decimal(value: str | None) -> Decimal | None:
    """Parse amounts like '1,250,000.50' or '1250000'."""
    if not value:
        return None
    try:
        return Decimal(value.replace(",", "").replace(" ", "").strip())
    except InvalidOperation:
        return None


def parse_float(value: str | None) -> float | None:
    if not value:
        return None
    v = value.strip().rstrip("%")
    try:
        return float(v)
    except ValueError:
        return None


def parse_int(value: str | None) -> int | None:
    if not value:
        return None
    try:
        # handle "4", "4.0"
        return int(float(value.replace(",", "").strip()))
    except ValueError:
        return None


def parse_bool(value: str | None, default: bool = True) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "active"}
