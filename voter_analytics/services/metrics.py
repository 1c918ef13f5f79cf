from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..models.voter_contact import NUMERIC_FIELDS, VoterContactRecord
from ..schemas import DailyPoint, QueryParams, QueryResult, VoterMetrics
from .row_transformer import normalize_date

logger = logging.getLogger(__name__)

NO_FIELDS_ERROR = "Please select at least one field or enter a search term"
UNKNOWN_ERROR = "Unknown error"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")

_RESULT_TYPE_ALIASES = {
    "supporters": "support",
    "supporter": "support",
    "supported": "support",
    "refused": "refusal",
    "refusals": "refusal",
    "opposed": "oppose",
    "attempt": "attempts",
    "contact": "contacts",
}

_TACTIC_KEYS = {"sms": "sms", "phone": "phone", "canvas": "canvas"}


def normalize_result_type(result_type: Optional[str]) -> Optional[str]:
    """
    Map a display/result type to a record column.

    "Not Home" -> not_home, "badData" -> bad_data, "Supporters" -> support.
    Missing means attempts; anything that isn't a metric column returns None.
    """
    if not result_type:
        return "attempts"
    s = _CAMEL_BOUNDARY.sub("_", result_type.strip())
    s = s.lower().replace(" ", "_")
    s = _RESULT_TYPE_ALIASES.get(s, s)
    return s if s in NUMERIC_FIELDS else None


def split_person(person: str) -> Tuple[str, str]:
    """First token is the first name; everything after it is the last name."""
    parts = person.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _filters(user_id: Optional[str], params: Optional[QueryParams]) -> List[Any]:
    R = VoterContactRecord
    clauses: List[Any] = []

    if user_id is not None:
        clauses.append(R.user_id == user_id)

    if params is None:
        return clauses

    active = QueryParams.active

    if active(params.tactic):
        clauses.append(R.tactic == params.tactic)

    if active(params.date):
        # stored dates went through the same normalization at import
        start = normalize_date(params.date)
        if active(params.end_date):
            # ISO strings compare chronologically
            clauses.append(R.date >= start)
            clauses.append(R.date <= normalize_date(params.end_date))
        else:
            clauses.append(R.date == start)

    if active(params.team):
        clauses.append(R.team == params.team)

    if active(params.person):
        first, last = split_person(params.person)
        clauses.append(R.first_name == first)
        clauses.append(R.last_name == last)

    # Free-text search only narrows when no structured identity filter is set.
    if params.search_query and not (active(params.person) or active(params.tactic) or active(params.date)):
        q = params.search_query.lower()
        clauses.append(
            or_(
                func.lower(R.first_name + " " + R.last_name).contains(q, autoescape=True),
                func.lower(R.team).contains(q, autoescape=True),
                func.lower(R.tactic).contains(q, autoescape=True),
            )
        )

    return clauses


def fetch_records(
    session: Session,
    user_id: Optional[str],
    params: Optional[QueryParams] = None,
) -> List[VoterContactRecord]:
    stmt = select(VoterContactRecord).where(*_filters(user_id, params)).order_by(VoterContactRecord.id)
    return list(session.exec(stmt).all())


def aggregate_metrics(records: Iterable[Any]) -> VoterMetrics:
    """
    Sum records into VoterMetrics.

    - tactics are matched case-insensitively; other tactics still count toward
      team_attempts and by_date but have no pie slice
    - issues per day = not_home + refusal + bad_data
    - by_date keeps first-seen order; the chart formatter sorts
    """
    m = VoterMetrics()
    by_date: Dict[str, DailyPoint] = {}
    count = 0

    for r in records:
        count += 1
        attempts = int(getattr(r, "attempts", 0) or 0)
        contacts = int(getattr(r, "contacts", 0) or 0)
        not_home = int(getattr(r, "not_home", 0) or 0)
        refusal = int(getattr(r, "refusal", 0) or 0)
        bad_data = int(getattr(r, "bad_data", 0) or 0)

        key = _TACTIC_KEYS.get(str(getattr(r, "tactic", "") or "").strip().lower())
        if key:
            setattr(m.tactics, key, getattr(m.tactics, key) + attempts)

        m.contacts.support += int(getattr(r, "support", 0) or 0)
        m.contacts.oppose += int(getattr(r, "oppose", 0) or 0)
        m.contacts.undecided += int(getattr(r, "undecided", 0) or 0)

        m.not_reached.not_home += not_home
        m.not_reached.refusal += refusal
        m.not_reached.bad_data += bad_data

        team = getattr(r, "team", None)
        if team:
            m.team_attempts[team] = m.team_attempts.get(team, 0) + attempts

        day = str(getattr(r, "date", "") or "")
        point = by_date.get(day)
        if point is None:
            point = by_date[day] = DailyPoint(date=day)
        point.attempts += attempts
        point.contacts += contacts
        point.issues += not_home + refusal + bad_data

    m.by_date = list(by_date.values())
    m.record_count = count
    return m


def load_metrics(
    session: Session,
    user_id: Optional[str],
    params: Optional[QueryParams] = None,
) -> VoterMetrics:
    """Fetch (filtered only when the params actually filter) and aggregate."""
    use_filter = params if params is not None and params.is_filtered() else None
    records = fetch_records(session, user_id, use_filter)
    metrics = aggregate_metrics(records)
    if metrics.record_count == 0:
        logger.info("no records for user %s (filtered=%s)", user_id, use_filter is not None)
    return metrics


def calculate_result(
    session: Session,
    user_id: Optional[str],
    params: QueryParams,
) -> QueryResult:
    """
    Single-number answer for a query. Never raises:
      - nothing selected        -> error
      - unknown result type     -> error
      - zero matching records   -> result 0
      - database failure        -> error "Unknown error"
    """
    if not params.has_any():
        return QueryResult(error=NO_FIELDS_ERROR)

    column_name = normalize_result_type(params.result_type)
    if column_name is None:
        return QueryResult(error=f"Unknown result type: {params.result_type}")

    column = getattr(VoterContactRecord, column_name)
    stmt = select(func.coalesce(func.sum(column), 0)).where(*_filters(user_id, params))

    try:
        total = session.exec(stmt).one()
    except SQLAlchemyError:
        logger.exception("query failed for user %s", user_id)
        return QueryResult(error=UNKNOWN_ERROR)

    return QueryResult(result=int(total or 0))
