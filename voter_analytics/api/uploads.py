from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..errors import InvalidMappingError
from ..services.batch_uploader import UploadUser
from ..services.ingest import import_csv, preview_csv, validate_upload
from ..services.lookups import latest_dataset
from .deps import current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def parse_mapping_field(raw: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    """
    The reviewed mapping arrives as a JSON object form field:
    {"Volunteer First": "first_name", "Notes": null}
    """
    if raw is None or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidMappingError("Field mapping must be a JSON object") from e
    if not isinstance(data, dict):
        raise InvalidMappingError("Field mapping must be a JSON object")
    return {str(k): (None if v is None else str(v)) for k, v in data.items()}


async def _read_csv(file: UploadFile) -> bytes:
    validate_upload(file.filename, file.content_type, file.size)
    content = await file.read()
    # size may be unknown until read (chunked uploads)
    validate_upload(file.filename, file.content_type, len(content))
    return content


@router.post("/preview")
async def preview_upload(
    file: UploadFile = File(...),
    user: UploadUser = Depends(current_user),
) -> Dict[str, Any]:
    """
    Headers, suggested header -> field mapping, required fields nothing maps to,
    and the first rows, so the mapping can be reviewed before importing.
    Nothing is written.
    """
    content = await _read_csv(file)
    preview = preview_csv(content)
    return asdict(preview)


@router.post("/csv")
async def upload_csv(
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
) -> Dict[str, Any]:
    """
    Replace the caller's dataset with the contents of a CSV file.

    `mapping` optionally overrides the suggested header mapping per column.
    Input-format problems -> 400, nothing valid -> 422, database failure -> 500/503
    (mapped by the app-level exception handlers).
    """
    overrides = parse_mapping_field(mapping)
    content = await _read_csv(file)

    progress: List[int] = []
    summary = await run_in_threadpool(
        import_csv,
        db,
        content,
        user,
        file_name=file.filename or "",
        on_progress=progress.append,
        batch_size=settings.upload_batch_size,
        default_team=settings.default_team,
        mapping=overrides,
    )
    logger.info("upload %s for %s: %s", summary.upload_id, user.user_id, summary.stats)

    return {
        "upload_id": summary.upload_id,
        "label": summary.label,
        "message": summary.message,
        "stats": summary.stats,
        "unmapped_headers": summary.unmapped_headers,
        "progress": progress,
    }


@router.get("/latest")
def get_latest_upload(
    db: Session = Depends(get_db),
    user: UploadUser = Depends(current_user),
) -> Dict[str, Optional[Any]]:
    run = latest_dataset(db, user.user_id)
    if not run:
        raise HTTPException(status_code=404, detail="No dataset uploaded yet")
    return {
        "id": run.id,
        "dataset_name": run.label,
        "file_name": run.file_name,
        "uploaded_at": run.completed_at or run.created_at,
        "rows_valid": run.rows_valid,
        "rows_invalid": run.rows_invalid,
    }
