from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence

from dateutil import parser as dateparser

from ..models.voter_contact import NUMERIC_FIELDS

logger = logging.getLogger(__name__)

# Two defaults that differ in year, month and day. dateutil fills any part the
# input lacks from the default, so a value that parses differently under each
# is a partial date.
_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def to_count(value: Any) -> int:
    """
    Coerce a raw cell into a non-negative integer.

    Reads the leading integer the way a spreadsheet export tends to write it
    ("12", "12.0", "12 calls"); anything else, including "", is 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0
        return max(0, int(value))

    m = _LEADING_INT.match(str(value))
    if not m:
        return 0
    return max(0, int(m.group(1)))


def normalize_team(value: str) -> str:
    v = (value or "").strip()
    lowered = v.lower()
    if "tony" in lowered:
        return "Team Tony"
    if "party" in lowered or "local" in lowered:
        return "Local Party"
    if "candidate" in lowered:
        return "Candidate"
    return v


def normalize_date(value: str) -> str:
    """
    Reformat any parsable date as YYYY-MM-DD; otherwise return the input unchanged.
    Ambiguous numeric dates are read month-first (4/1/2024 -> 2024-04-01).
    Partial dates ("April 5", "2024", "12") are kept unchanged rather than
    completed from the current date.
    """
    v = (value or "").strip()
    if not v:
        return v
    try:
        first, second = (dateparser.parse(v, default=d).date() for d in _DEFAULTS)
    except (ValueError, OverflowError):
        logger.debug("could not parse date %r; keeping as-is", v)
        return v
    if first != second:
        logger.debug("partial date %r; keeping as-is", v)
        return v
    return first.isoformat()


def transform_row(row: Sequence[str], columns: Mapping[int, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for index, field_name in columns.items():
        raw = row[index] if index < len(row) else ""
        value = (raw or "").strip()

        if field_name in NUMERIC_FIELDS:
            out[field_name] = to_count(value)
        elif field_name == "team":
            out[field_name] = normalize_team(value) if value else value
        elif field_name == "date":
            out[field_name] = normalize_date(value)
        else:
            out[field_name] = value
    return out


def transform_rows(data: Sequence[Sequence[str]], columns: Mapping[int, str]) -> List[Dict[str, Any]]:
    rows = [transform_row(row, columns) for row in data]
    logger.info("transformed %d rows using %d mapped columns", len(rows), len(columns))
    return rows
