from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..database import get_db
from ..schemas import QueryParams
from ..services.batch_uploader import UploadUser
from ..services.chart_formatter import build_dashboard_charts
from ..services.generations import GenerationCounter
from ..services.metrics import load_metrics
from .deps import current_user, get_generations

router = APIRouter(prefix="/metrics", tags=["metrics"])


def metric_filters(
    tactic: Optional[str] = None,
    person: Optional[str] = None,
    date: Optional[str] = None,
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    team: Optional[str] = None,
    search_query: Optional[str] = Query(default=None, alias="searchQuery"),
) -> QueryParams:
    return QueryParams(
        tactic=tactic,
        person=person,
        date=date,
        end_date=end_date,
        team=team,
        search_query=search_query,
    )


@router.get("")
def get_metrics(
    params: QueryParams = Depends(metric_filters),
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
    generations: GenerationCounter = Depends(get_generations),
) -> Dict[str, Any]:
    key = (user.user_id, "metrics")
    gen = generations.begin(key)

    metrics = load_metrics(db, user.user_id, params)

    return {
        "metrics": metrics,
        "totals": {
            "attempts": metrics.total_attempts,
            "contacts": metrics.total_contacts,
            "not_reached": metrics.total_not_reached,
        },
        "has_data": metrics.record_count > 0,
        "stale": not generations.is_current(key, gen),
    }


@router.get("/charts")
def get_charts(
    theme: Literal["light", "dark"] = "light",
    cumulative: bool = False,
    params: QueryParams = Depends(metric_filters),
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
    generations: GenerationCounter = Depends(get_generations),
) -> Dict[str, Any]:
    key = (user.user_id, "charts")
    gen = generations.begin(key)

    metrics = load_metrics(db, user.user_id, params)
    payload = build_dashboard_charts(metrics, theme=theme, cumulative=cumulative)
    payload["stale"] = not generations.is_current(key, gen)
    return payload
