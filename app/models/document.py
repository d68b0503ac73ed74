"""
Document record model for uploaded property-grant files.

Tracks ownership, upload metadata and the status of the OCR pipeline.
Records are immutable snapshots: stores replace a record wholesale on every
status change so a reader never sees a half-written one.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Lifecycle states of a document in the pipeline."""

    PENDING = "pending"  # Uploaded, not yet picked by worker
    PROCESSING = "processing"  # Worker is extracting text
    COMPLETED = "completed"  # Text and property details saved
    FAILED = "failed"  # Extraction raised or timed out

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.COMPLETED, DocumentStatus.FAILED)


# Forward-only: pending -> processing -> {completed, failed}
ALLOWED_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.COMPLETED, DocumentStatus.FAILED}),
    DocumentStatus.COMPLETED: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}


def can_transition(current: DocumentStatus, new: DocumentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PropertyDetails(CamelModel):
    """Property grant fields parsed from the extracted text."""

    owner_name: Optional[str] = None
    property_address: Optional[str] = None
    survey_number: Optional[str] = None
    area: Optional[str] = None
    registration_date: Optional[str] = None  # ISO date when parseable

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "ownerName": "Tan Ah Kow",
                "propertyAddress": "12 Jalan Bukit, Kuala Lumpur",
                "surveyNumber": "SN-4471/2",
                "area": "1,200 sq ft",
                "registrationDate": "2019-03-14",
            }
        },
    )


class DocumentRecord(CamelModel):
    """
    One uploaded file and its processing state.
    owner_id is the authenticated uploader and scopes every read.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    owner_id: str
    original_name: str
    mime_type: str
    byte_size: int
    file_path: str  # Internal; never exposed in views
    status: DocumentStatus = DocumentStatus.PENDING
    extracted_text: str = ""
    is_processed: bool = False
    derived_fields: Optional[PropertyDetails] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    processing_started_at: Optional[datetime] = None


class StatusPatch(BaseModel):
    """
    Fields the worker may change on a record, applied in one atomic update.
    Anything left as None is kept as-is.
    """

    model_config = ConfigDict(frozen=True)

    status: DocumentStatus
    extracted_text: Optional[str] = None
    is_processed: Optional[bool] = None
    derived_fields: Optional[PropertyDetails] = None
    processing_started_at: Optional[datetime] = None

    def changes(self) -> dict:
        """Non-empty fields plus a fresh updated_at, ready for model_copy/$set."""
        data = self.model_dump(exclude_none=True)
        data["status"] = self.status
        if self.derived_fields is not None:
            data["derived_fields"] = self.derived_fields
        data["updated_at"] = utcnow()
        return data


class DocumentRecordSummary(CamelModel):
    """Returned by the upload endpoint."""

    id: str
    original_name: str
    mime_type: str
    byte_size: int
    status: DocumentStatus
    created_at: datetime

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentRecordSummary":
        return cls(
            id=record.id,
            original_name=record.original_name,
            mime_type=record.mime_type,
            byte_size=record.byte_size,
            status=record.status,
            created_at=record.created_at,
        )


class DocumentRecordView(DocumentRecordSummary):
    """Everything the owner may see about a record; polled by the dashboard."""

    extracted_text: str
    is_processed: bool
    derived_fields: Optional[PropertyDetails] = None
    updated_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3f1c9a0e5b2d4c8e9f7a6b5c4d3e2f1a",
                "originalName": "grant.pdf",
                "mimeType": "application/pdf",
                "byteSize": 20480,
                "status": "completed",
                "createdAt": "2025-01-01T00:00:00Z",
                "extractedText": "OCR EXTRACTED TEXT FOR: grant.pdf ...",
                "isProcessed": True,
                "derivedFields": None,
                "updatedAt": "2025-01-01T00:00:03Z",
            }
        },
    )

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentRecordView":
        return cls(
            id=record.id,
            original_name=record.original_name,
            mime_type=record.mime_type,
            byte_size=record.byte_size,
            status=record.status,
            created_at=record.created_at,
            extracted_text=record.extracted_text,
            is_processed=record.is_processed,
            derived_fields=record.derived_fields,
            updated_at=record.updated_at,
        )


class UploadResponse(BaseModel):
    status: str = "success"
    message: str = "File uploaded successfully. OCR processing started."
    item: DocumentRecordSummary
