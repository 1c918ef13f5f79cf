from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


class UploadRun(SQLModel, table=True):
    """
    One row per CSV upload attempt.

    - The latest COMPLETE run names the dataset shown in the dashboard header.
    - A PENDING row that never completes marks an upload that died mid-flight;
      FAILED rows keep the categorized error for support.
    """

    __tablename__ = "upload_runs"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: str = Field(index=True)
    user_email: Optional[str] = Field(default=None)

    file_name: str = Field(default="")
    label: Optional[str] = Field(default=None)

    status: UploadStatus = Field(default=UploadStatus.PENDING, index=True)

    rows_total: int = Field(default=0)
    rows_valid: int = Field(default=0)
    rows_invalid: int = Field(default=0)
    progress: int = Field(default=0)

    error: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    completed_at: Optional[datetime] = Field(default=None)

    def mark_complete(self) -> None:
        self.status = UploadStatus.COMPLETE
        self.progress = 100
        self.completed_at = utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = UploadStatus.FAILED
        self.error = error
        self.completed_at = utcnow()
