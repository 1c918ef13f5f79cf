from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..database import get_db
from ..services.batch_uploader import UploadUser
from ..services.lookups import list_people, list_tactics, list_teams, search_records
from .deps import current_user

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("/tactics")
def get_tactics(db: Session = Depends(get_db), user: UploadUser = Depends(current_user)) -> List[str]:
    return list_tactics(db, user.user_id)


@router.get("/teams")
def get_teams(db: Session = Depends(get_db), user: UploadUser = Depends(current_user)) -> List[str]:
    return list_teams(db, user.user_id)


@router.get("/people")
def get_people(
    team: Optional[str] = None,
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
) -> List[str]:
    return list_people(db, user.user_id, team)


@router.get("/search")
def search(
    q: str = "",
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
) -> List[Dict[str, Any]]:
    return [r.as_row() for r in search_records(db, user.user_id, q, limit=limit)]
