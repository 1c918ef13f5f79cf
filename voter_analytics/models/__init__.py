# voter_analytics/models/__init__.py
# Central import surface for SQLModel table registration.
# Keeping these imports ensures init_db() sees all models and creates tables.

from .voter_contact import (
    IDENTITY_FIELDS,
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
    VoterContactRecord,
)
from .upload_run import UploadRun, UploadStatus

__all__ = [
    "IDENTITY_FIELDS",
    "NUMERIC_FIELDS",
    "REQUIRED_FIELDS",
    "VoterContactRecord",
    "UploadRun",
    "UploadStatus",
]
