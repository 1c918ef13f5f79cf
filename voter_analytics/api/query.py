from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..errors import NaturalLanguageQueryError
from ..schemas import QueryParams, QueryResult
from ..services.ai import extract_query_params, keyword_query_params
from ..services.batch_uploader import UploadUser
from ..services.error_reporter import ErrorReporter
from ..services.generations import GenerationCounter
from ..services.metrics import calculate_result
from .deps import current_user, get_generations, get_reporter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/query", tags=["query"])


class NaturalQuery(BaseModel):
    text: str = PydField(..., min_length=1, max_length=1000)


def _answer(
    db: Session,
    user: UploadUser,
    params: QueryParams,
    generations: GenerationCounter,
) -> QueryResult:
    key = (user.user_id, "query")
    gen = generations.begin(key)
    result = calculate_result(db, user.user_id, params)
    result.stale = not generations.is_current(key, gen)
    return result


@router.post("/result", response_model=QueryResult)
def query_result(
    params: QueryParams,
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
    generations: GenerationCounter = Depends(get_generations),
) -> QueryResult:
    """
    Single number for a filter. Errors come back in the body, never as a 5xx.
    """
    return _answer(db, user, params, generations)


@router.post("/natural")
async def query_natural(
    payload: NaturalQuery,
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
    generations: GenerationCounter = Depends(get_generations),
    reporter: ErrorReporter = Depends(get_reporter),
) -> Dict[str, Any]:
    """
    Turn a question into a filter and answer it.

    Uses OpenAI when OPENAI_API_KEY is configured, otherwise keyword extraction.
    """
    if settings.openai_api_key:
        try:
            params = await extract_query_params(payload.text)
        except NaturalLanguageQueryError as e:
            await reporter.report(e, "natural-query", route="/query/natural", metadata={"user_id": user.user_id})
            raise HTTPException(status_code=502, detail="Could not interpret the question. Please try again.")
        source = "llm"
    else:
        params = keyword_query_params(payload.text)
        source = "keywords"

    result = _answer(db, user, params, generations)
    return {
        "params": params.model_dump(exclude_none=True),
        "source": source,
        "result": result.result,
        "error": result.error,
        "stale": result.stale,
    }
