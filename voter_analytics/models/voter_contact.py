from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Order matters: this is the order metrics are reported and defaults are filled.
NUMERIC_FIELDS = [
    "attempts",
    "contacts",
    "not_home",
    "refusal",
    "bad_data",
    "support",
    "oppose",
    "undecided",
]

REQUIRED_FIELDS = ["first_name", "last_name", "date", "tactic"]

# A person can only have one row per day per tactic within one user's dataset.
IDENTITY_FIELDS = ("first_name", "last_name", "date", "tactic")


class VoterContactRecord(SQLModel, table=True):
    """
    One row of contact-attempt data for one canvasser on one day with one tactic.

    Notes:
    - date is stored as an ISO string (YYYY-MM-DD) exactly as ingested; unparsable
      source dates are kept verbatim so nothing is silently rewritten.
    - user_id scopes ownership; each upload replaces the user's previous rows.
    """

    __tablename__ = "voter_contacts"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "first_name", "last_name", "date", "tactic",
            name="uq_voter_contacts_identity",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    first_name: str = Field(index=True)
    last_name: str = Field(index=True)
    team: str = Field(default="Team Tony", index=True)
    date: str = Field(index=True)
    tactic: str = Field(index=True)

    attempts: int = Field(default=0)
    contacts: int = Field(default=0)
    not_home: int = Field(default=0)
    refusal: int = Field(default=0)
    bad_data: int = Field(default=0)
    support: int = Field(default=0)
    oppose: int = Field(default=0)
    undecided: int = Field(default=0)

    # Ownership / provenance
    user_id: Optional[str] = Field(default=None, index=True)
    user_email: Optional[str] = Field(default=None)
    label: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)

    def metric(self, field: str) -> int:
        return int(getattr(self, field, 0) or 0)

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "team": self.team,
            "date": self.date,
            "tactic": self.tactic,
            **{f: self.metric(f) for f in NUMERIC_FIELDS},
            "user_id": self.user_id,
            "user_email": self.user_email,
            "label": self.label,
        }
