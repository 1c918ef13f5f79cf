from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from ..models.upload_run import UploadRun, UploadStatus
from ..models.voter_contact import VoterContactRecord
from ..schemas import ALL


def _distinct(session: Session, column, user_id: Optional[str]) -> List[str]:
    stmt = select(column).distinct()
    if user_id is not None:
        stmt = stmt.where(VoterContactRecord.user_id == user_id)
    values = [v for v in session.exec(stmt).all() if v]
    return sorted(set(values))


def list_tactics(session: Session, user_id: Optional[str]) -> List[str]:
    return _distinct(session, VoterContactRecord.tactic, user_id)


def list_teams(session: Session, user_id: Optional[str]) -> List[str]:
    return _distinct(session, VoterContactRecord.team, user_id)


def list_people(session: Session, user_id: Optional[str], team: Optional[str] = None) -> List[str]:
    """
    Distinct "First Last" names, optionally narrowed to one team.
    "All" (the dropdown default) means no team filter.
    """
    R = VoterContactRecord
    stmt = select(R.first_name, R.last_name).distinct()
    if user_id is not None:
        stmt = stmt.where(R.user_id == user_id)
    if team and team != ALL:
        stmt = stmt.where(R.team == team)

    names = {f"{first} {last}".strip() for first, last in session.exec(stmt).all()}
    return sorted(n for n in names if n)


def search_records(
    session: Session,
    user_id: Optional[str],
    q: Optional[str],
    *,
    limit: int = 100,
) -> List[VoterContactRecord]:
    """Case-insensitive substring match over name, team and tactic."""
    term = (q or "").strip().lower()
    if not term:
        return []

    R = VoterContactRecord
    stmt = select(R).where(
        or_(
            func.lower(R.first_name + " " + R.last_name).contains(term, autoescape=True),
            func.lower(R.team).contains(term, autoescape=True),
            func.lower(R.tactic).contains(term, autoescape=True),
        )
    )
    if user_id is not None:
        stmt = stmt.where(R.user_id == user_id)
    stmt = stmt.order_by(R.date, R.last_name, R.first_name).limit(limit)
    return list(session.exec(stmt).all())


def latest_dataset(session: Session, user_id: str) -> Optional[UploadRun]:
    stmt = (
        select(UploadRun)
        .where(UploadRun.user_id == user_id, UploadRun.status == UploadStatus.COMPLETE)
        .order_by(UploadRun.created_at.desc(), UploadRun.id.desc())
    )
    return session.exec(stmt).first()
