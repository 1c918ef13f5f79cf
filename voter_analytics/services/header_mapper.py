from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidMappingError
from ..models.voter_contact import REQUIRED_FIELDS

# Priority-ordered: a header listed under several canonical fields maps to the
# first one here (e.g. "negative" -> refusal, never oppose). Keep this order stable;
# it is part of the import contract users rely on.
HEADER_VARIATIONS: List[Tuple[str, Tuple[str, ...]]] = [
    ("first_name", ("first_name", "firstname", "first", "fname", "name", "given name", "given_name", "first name")),
    ("last_name", ("last_name", "lastname", "last", "lname", "surname", "family name", "last name")),
    ("team", ("team", "team_name", "teamname", "group", "department", "organization", "org", "team name")),
    ("date", ("date", "contact_date", "day", "timestamp", "contact date")),
    ("tactic", ("tactic", "type", "contact_type", "method", "channel", "medium")),
    ("attempts", ("attempts", "attempt", "tried", "tries", "total_attempts", "total attempts")),
    ("contacts", ("contacts", "contact", "reached", "connected", "success", "successful")),
    ("not_home", ("not_home", "nothome", "nh", "not_at_home", "away", "absent", "not available", "not home")),
    ("refusal", ("refusal", "refused", "decline", "rejected", "no", "not interested", "negative")),
    ("bad_data", ("bad_data", "baddata", "bad", "invalid", "error", "incorrect", "wrong number", "bad data")),
    ("support", ("support", "supports", "for", "positive", "yes", "favorable", "agree")),
    ("oppose", ("oppose", "opposed", "against", "negative", "disagree", "unfavorable")),
    ("undecided", ("undecided", "unsure", "maybe", "neutral", "thinking", "considering")),
]

CANONICAL_FIELDS = [canonical for canonical, _ in HEADER_VARIATIONS]


@dataclass(frozen=True)
class HeaderMapping:
    """
    columns: CSV column index -> canonical field name
    unmapped: headers that matched nothing (their columns are ignored)
    """

    columns: Dict[int, str] = field(default_factory=dict)
    unmapped: List[str] = field(default_factory=list)

    @property
    def mapped_fields(self) -> List[str]:
        return list(self.columns.values())

    def missing_required(self) -> List[str]:
        present = set(self.columns.values())
        return [f for f in REQUIRED_FIELDS if f not in present]


def canonical_field(header: str) -> str | None:
    """Canonical field for one raw header, or None if it matches nothing."""
    normalized = (header or "").strip().lower()
    for canonical, variations in HEADER_VARIATIONS:
        if normalized in variations:
            return canonical
    return None


def map_headers(headers: Sequence[str]) -> HeaderMapping:
    columns: Dict[int, str] = {}
    unmapped: List[str] = []

    for index, header in enumerate(headers):
        canonical = canonical_field(header)
        if canonical is None:
            unmapped.append(header)
        else:
            columns[index] = canonical

    return HeaderMapping(columns=columns, unmapped=unmapped)


def apply_overrides(
    headers: Sequence[str],
    mapping: HeaderMapping,
    overrides: Optional[Mapping[str, Optional[str]]],
) -> HeaderMapping:
    """
    Apply a reviewed mapping on top of the suggested one.

    overrides: raw header -> canonical field, or None / "" to ignore that column.
    A field chosen for a header is taken away from any other column it was
    suggested for. Unknown headers or fields raise InvalidMappingError.
    """
    if not overrides:
        return mapping

    known_headers = {h.strip() for h in headers}
    chosen: Dict[str, Optional[str]] = {}
    for raw_header, raw_field in overrides.items():
        header = str(raw_header).strip()
        if header not in known_headers:
            raise InvalidMappingError(f"Column not found in file: {header}")
        field_name = (str(raw_field).strip() if raw_field is not None else "") or None
        if field_name is not None and field_name not in CANONICAL_FIELDS:
            raise InvalidMappingError(f"Unknown field for column {header}: {field_name}")
        chosen[header] = field_name

    claimed = {f for f in chosen.values() if f}
    columns: Dict[int, str] = {}
    unmapped: List[str] = []

    for index, header in enumerate(headers):
        key = header.strip()
        if key in chosen:
            field_name = chosen[key]
        else:
            field_name = mapping.columns.get(index)
            if field_name in claimed:
                field_name = None

        if field_name is None:
            unmapped.append(header)
        else:
            columns[index] = field_name

    return HeaderMapping(columns=columns, unmapped=unmapped)
