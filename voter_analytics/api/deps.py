from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from ..services.batch_uploader import UploadUser
from ..services.error_reporter import ErrorReporter
from ..services.generations import GenerationCounter


def current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> UploadUser:
    """
    Identity comes from the hosting auth layer via headers.
    Every data route is scoped to this user.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    email = (x_user_email or "").strip() or None
    return UploadUser(user_id=user_id, email=email)


def get_reporter(request: Request) -> ErrorReporter:
    return request.app.state.reporter


def get_generations(request: Request) -> GenerationCounter:
    return request.app.state.generations
