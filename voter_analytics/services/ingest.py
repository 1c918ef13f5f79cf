from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import settings
from ..errors import (
    FileTooLargeError,
    NoValidRowsError,
    PersistenceError,
    UnsupportedFileTypeError,
)
from ..models.upload_run import UploadRun
from .batch_uploader import ProgressCallback, UploadUser, replace_user_records, to_persistence_error
from .csv_parser import parse_csv
from .header_mapper import CANONICAL_FIELDS, apply_overrides, map_headers
from .row_transformer import transform_rows
from .validator import validate_and_enhance

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = ("text/csv", "application/csv")


@dataclass
class ImportSummary:
    stats: Dict[str, Any]
    label: str
    message: str
    upload_id: Optional[int] = None
    unmapped_headers: List[str] = field(default_factory=list)


def validate_upload(
    file_name: Optional[str],
    content_type: Optional[str],
    size: Optional[int],
    max_bytes: Optional[int] = None,
) -> None:
    """
    Reject files that are not CSV (by extension or mime) or exceed the size limit.
    """
    name = (file_name or "").strip().lower()
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in CSV_CONTENT_TYPES and not name.endswith(".csv"):
        raise UnsupportedFileTypeError("Please upload a CSV file")

    limit = max_bytes or settings.upload_max_bytes
    if size is not None and size > limit:
        raise FileTooLargeError(f"Please upload a file smaller than {limit // (1024 * 1024)}MB")


def describe_persistence_error(error: PersistenceError) -> str:
    prefix = "There was an error uploading your data. "
    if error.schema_missing:
        return prefix + "Database setup issue. Please contact support."
    return prefix + (str(error) or "Unknown error occurred.")


def import_message(valid: int, total: int, invalid: int, label: str) -> str:
    if valid == total:
        return f'{valid} records imported to your database as "{label}".'
    return (
        f'{valid} of {total} records imported as "{label}". '
        f"{invalid} records were skipped due to missing required fields or duplicates."
    )


@dataclass
class CSVPreview:
    """What a user reviews before importing: suggested mapping plus sample rows."""

    headers: List[str]
    suggested: Dict[str, Optional[str]]
    missing_required: List[str]
    rows: List[List[str]]
    total_rows: int
    fields: List[str] = field(default_factory=lambda: list(CANONICAL_FIELDS))


def preview_csv(content: Union[bytes, str], *, sample_size: int = 10) -> CSVPreview:
    parsed = parse_csv(content)
    mapping = map_headers(parsed.headers)
    suggested = {h: mapping.columns.get(i) for i, h in enumerate(parsed.headers)}
    return CSVPreview(
        headers=parsed.headers,
        suggested=suggested,
        missing_required=mapping.missing_required(),
        rows=parsed.data[:sample_size],
        total_rows=parsed.row_count,
    )


def _save_run(session: Session, run: UploadRun) -> None:
    try:
        session.add(run)
        session.commit()
        session.refresh(run)
    except SQLAlchemyError as e:
        session.rollback()
        raise to_persistence_error(e) from e


def import_csv(
    session: Session,
    content: Union[bytes, str],
    user: UploadUser,
    *,
    file_name: str = "",
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    default_team: Optional[str] = None,
    mapping: Optional[Mapping[str, Optional[str]]] = None,
) -> ImportSummary:
    """
    Parse, map, transform, validate and replace the user's dataset.

    `mapping` (header -> field, None to skip) overrides the suggested header
    mapping column by column. Input-format problems raise before anything is
    written. Any database failure surfaces as PersistenceError; a failed
    replace rolls the dataset back and is recorded on the UploadRun.
    """
    parsed = parse_csv(content)
    header_mapping = apply_overrides(parsed.headers, map_headers(parsed.headers), mapping)
    logger.info(
        "csv %r: %d rows, mapped=%s unmapped=%s",
        file_name,
        parsed.row_count,
        header_mapping.mapped_fields,
        header_mapping.unmapped,
    )
    missing = header_mapping.missing_required()
    if missing:
        logger.warning("csv %r has no column for required fields: %s", file_name, ", ".join(missing))

    rows = transform_rows(parsed.data, header_mapping.columns)
    validation = validate_and_enhance(rows, default_team=default_team)
    stats = validation.stats()

    if not validation.valid_data:
        raise NoValidRowsError(
            "No valid data found in CSV. Please ensure CSV contains required fields: "
            "first_name, last_name, date and tactic."
        )

    run = UploadRun(
        user_id=user.user_id,
        user_email=user.email,
        file_name=file_name,
        label=user.label,
        rows_total=stats["total"],
        rows_valid=stats["valid"],
        rows_invalid=stats["invalid"],
    )
    _save_run(session, run)
    run_id = run.id

    try:
        replace_user_records(
            session,
            validation.valid_data,
            user,
            on_progress,
            batch_size=batch_size,
        )
    except PersistenceError as e:
        failed = session.get(UploadRun, run_id)
        if failed is not None:
            failed.mark_failed(describe_persistence_error(e))
            try:
                _save_run(session, failed)
            except PersistenceError:
                logger.exception("could not record failure on upload %s", run_id)
        raise

    done = session.get(UploadRun, run_id)
    if done is not None:
        done.mark_complete()
        _save_run(session, done)

    return ImportSummary(
        stats=stats,
        label=user.label,
        message=import_message(stats["valid"], stats["total"], stats["invalid"], user.label),
        upload_id=run_id,
        unmapped_headers=header_mapping.unmapped,
    )
