from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import settings
from ..errors import PersistenceError
from ..models.voter_contact import NUMERIC_FIELDS, VoterContactRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

_RECORD_FIELDS = ("first_name", "last_name", "team", "date", "tactic", *NUMERIC_FIELDS)

_SCHEMA_MISSING_MARKERS = ("no such table", "does not exist", "undefinedtable", "42p01")


@dataclass(frozen=True)
class UploadUser:
    """Identity of the uploading user, as supplied by the hosting auth layer."""

    user_id: str
    email: Optional[str] = None

    @property
    def label(self) -> str:
        return f"voter contact - {self.email or 'unknown'}"


def _is_schema_missing(exc: BaseException) -> bool:
    text = f"{type(getattr(exc, 'orig', exc)).__name__} {exc}".lower()
    return any(marker in text for marker in _SCHEMA_MISSING_MARKERS)


def to_persistence_error(exc: SQLAlchemyError, *, batch: Optional[int] = None) -> PersistenceError:
    return PersistenceError(str(getattr(exc, "orig", None) or exc), schema_missing=_is_schema_missing(exc), batch=batch)


def chunk(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [items[i : i + size] for i in range(0, len(items), size)]


def build_record(row: Mapping[str, Any], user: UploadUser) -> VoterContactRecord:
    values: Dict[str, Any] = {k: row[k] for k in _RECORD_FIELDS if k in row}
    return VoterContactRecord(
        **values,
        user_id=user.user_id,
        user_email=user.email,
        label=user.label,
    )


def clear_existing_contacts(session: Session, user_id: str) -> int:
    """
    Delete every record owned by user_id. Does not commit; callers decide the
    transaction boundary.
    """
    try:
        result = session.exec(delete(VoterContactRecord).where(VoterContactRecord.user_id == user_id))
    except SQLAlchemyError as e:
        raise to_persistence_error(e) from e
    deleted = int(result.rowcount or 0)
    logger.info("cleared %d existing records for user %s", deleted, user_id)
    return deleted


def upload_batches(
    session: Session,
    valid_data: Sequence[Mapping[str, Any]],
    on_progress: Optional[ProgressCallback],
    user: UploadUser,
    *,
    batch_size: Optional[int] = None,
) -> int:
    """
    Stamp ownership on every row and write it in sequential batches.

    After each batch, on_progress receives round(done / total * 100). The first
    failing batch aborts the upload with PersistenceError; nothing is committed
    here.
    """
    size = batch_size or settings.upload_batch_size
    batches = chunk(list(valid_data), size)
    total = len(batches)

    if total == 0:
        if on_progress:
            on_progress(100)
        return 0

    logger.info("uploading %d rows in %d batches of max %d", len(valid_data), total, size)

    written = 0
    for i, batch in enumerate(batches, start=1):
        try:
            session.add_all([build_record(row, user) for row in batch])
            session.flush()
        except SQLAlchemyError as e:
            logger.error("batch %d/%d failed: %s", i, total, e)
            raise to_persistence_error(e, batch=i) from e

        written += len(batch)
        if on_progress:
            on_progress(round(i / total * 100))

    return written


def replace_user_records(
    session: Session,
    valid_data: Sequence[Mapping[str, Any]],
    user: UploadUser,
    on_progress: Optional[ProgressCallback] = None,
    *,
    batch_size: Optional[int] = None,
) -> int:
    """
    Full replace of a user's dataset in one transaction: clear, insert every
    batch, commit. Any failure rolls back, so the previous dataset survives a
    partial upload.
    """
    try:
        clear_existing_contacts(session, user.user_id)
        written = upload_batches(session, valid_data, on_progress, user, batch_size=batch_size)
        session.commit()
    except PersistenceError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        raise to_persistence_error(e) from e

    logger.info("replaced dataset for user %s with %d records", user.user_id, written)
    return written
