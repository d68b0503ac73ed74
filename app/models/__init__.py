"""Pydantic records, views and request schemas."""

from app.models.document import (
    DocumentRecord,
    DocumentRecordSummary,
    DocumentRecordView,
    DocumentStatus,
    PropertyDetails,
    StatusPatch,
)
from app.models.user import UserPublic, UserRecord

__all__ = [
    "DocumentRecord",
    "DocumentRecordSummary",
    "DocumentRecordView",
    "DocumentStatus",
    "PropertyDetails",
    "StatusPatch",
    "UserPublic",
    "UserRecord",
]
