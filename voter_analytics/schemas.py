from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field as PydField, field_validator

# Dropdown value meaning "no filter on this field".
ALL = "All"


def _clean(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class QueryParams(BaseModel):
    """
    Sparse filter used both for aggregation and for single-number results.

    Accepts the dashboard's camelCase keys (resultType, searchQuery, endDate)
    as well as snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tactic: Optional[str] = None
    person: Optional[str] = None
    date: Optional[str] = None
    end_date: Optional[str] = PydField(default=None, validation_alias=AliasChoices("end_date", "endDate"))
    result_type: Optional[str] = PydField(
        default=None, validation_alias=AliasChoices("result_type", "resultType")
    )
    team: Optional[str] = None
    search_query: Optional[str] = PydField(
        default=None, validation_alias=AliasChoices("search_query", "searchQuery")
    )

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, v):
        return _clean(v)

    @staticmethod
    def active(value: Optional[str]) -> bool:
        return bool(value) and value != ALL

    def has_any(self) -> bool:
        return any(
            [
                self.tactic,
                self.result_type,
                self.person,
                self.date,
                self.team,
                self.search_query,
            ]
        )

    def is_filtered(self) -> bool:
        return any(
            self.active(v)
            for v in (self.tactic, self.person, self.date, self.team, self.search_query)
        )


class QueryResult(BaseModel):
    """Exactly one of result / error is set."""

    result: Optional[int] = None
    error: Optional[str] = None
    stale: bool = False


class DailyPoint(BaseModel):
    date: str
    attempts: int = 0
    contacts: int = 0
    issues: int = 0


class TacticTotals(BaseModel):
    sms: int = 0
    phone: int = 0
    canvas: int = 0


class ContactTotals(BaseModel):
    support: int = 0
    oppose: int = 0
    undecided: int = 0


class NotReachedTotals(BaseModel):
    not_home: int = 0
    refusal: int = 0
    bad_data: int = 0


class VoterMetrics(BaseModel):
    tactics: TacticTotals = PydField(default_factory=TacticTotals)
    contacts: ContactTotals = PydField(default_factory=ContactTotals)
    not_reached: NotReachedTotals = PydField(default_factory=NotReachedTotals)
    team_attempts: Dict[str, int] = PydField(default_factory=dict)
    by_date: List[DailyPoint] = PydField(default_factory=list)
    record_count: int = 0

    @property
    def total_attempts(self) -> int:
        t = self.tactics
        return t.sms + t.phone + t.canvas

    @property
    def total_contacts(self) -> int:
        c = self.contacts
        return c.support + c.oppose + c.undecided

    @property
    def total_not_reached(self) -> int:
        n = self.not_reached
        return n.not_home + n.refusal + n.bad_data


class PieSlice(BaseModel):
    name: str
    value: int
    color: str


class LinePoint(BaseModel):
    date: str
    attempts: int = 0
    contacts: int = 0
    issues: int = 0
    display_date: Optional[str] = None
    daily_attempts: Optional[int] = None
    daily_contacts: Optional[int] = None
    daily_issues: Optional[int] = None
    cumulative_attempts: Optional[int] = None
    cumulative_contacts: Optional[int] = None
    cumulative_issues: Optional[int] = None
