from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import settings
from ..models.voter_contact import IDENTITY_FIELDS, NUMERIC_FIELDS, REQUIRED_FIELDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvalidRow:
    row: Dict[str, Any]
    reason: str


@dataclass
class ValidationResult:
    """
    Partition of the input rows. Every input row lands in exactly one list:
    len(valid_data) + len(invalid_data) == number of rows validated.
    """

    valid_data: List[Dict[str, Any]] = field(default_factory=list)
    invalid_data: List[InvalidRow] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid_data) + len(self.invalid_data)

    def reason_counts(self) -> Dict[str, int]:
        return dict(Counter(item.reason for item in self.invalid_data))

    def stats(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "valid": len(self.valid_data),
            "invalid": len(self.invalid_data),
            "reasons": self.reason_counts(),
        }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def enhance_row(row: Mapping[str, Any], default_team: Optional[str] = None) -> Dict[str, Any]:
    enhanced = dict(row)
    for name in NUMERIC_FIELDS:
        if name not in enhanced:
            enhanced[name] = 0
    if _is_blank(enhanced.get("team")):
        enhanced["team"] = default_team or settings.default_team
    return enhanced


def missing_required_fields(row: Mapping[str, Any]) -> List[str]:
    return [name for name in REQUIRED_FIELDS if _is_blank(row.get(name))]


def _identity(row: Mapping[str, Any]) -> Tuple[str, ...]:
    return tuple(str(row.get(k, "")).strip() for k in IDENTITY_FIELDS)


def validate_and_enhance(
    rows: Sequence[Mapping[str, Any]],
    *,
    default_team: Optional[str] = None,
) -> ValidationResult:
    """
    Fill defaults, then route each row to valid or invalid.

    Rejections:
      - "Missing required fields: first_name, tactic"
      - "Duplicate record: first_name, last_name, date, tactic" for a repeat of an
        earlier valid row (the table enforces that identity per user)
    """
    result = ValidationResult()
    seen: set[Tuple[str, ...]] = set()
    duplicate_reason = f"Duplicate record: {', '.join(IDENTITY_FIELDS)}"

    for index, row in enumerate(rows):
        enhanced = enhance_row(row, default_team=default_team)

        missing = missing_required_fields(enhanced)
        if missing:
            result.invalid_data.append(
                InvalidRow(row=enhanced, reason=f"Missing required fields: {', '.join(missing)}")
            )
            if len(result.invalid_data) <= 5:
                logger.warning("row %d invalid, missing: %s", index, ", ".join(missing))
            continue

        key = _identity(enhanced)
        if key in seen:
            result.invalid_data.append(InvalidRow(row=enhanced, reason=duplicate_reason))
            continue

        seen.add(key)
        result.valid_data.append(enhanced)

    logger.info(
        "validation: %d valid, %d invalid of %d rows",
        len(result.valid_data),
        len(result.invalid_data),
        len(rows),
    )
    return result
