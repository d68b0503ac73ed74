"""
Beanie documents backing the MongoDB stores.

VaultItem mirrors DocumentRecord field for field; VaultUser mirrors
UserRecord. Conversion helpers keep the rest of the app on plain records.
"""

from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field
from pymongo import DESCENDING, IndexModel

from app.models.document import DocumentRecord, DocumentStatus, PropertyDetails, utcnow
from app.models.user import UserRecord


class VaultItem(Document):
    """An uploaded property grant document and its OCR state."""

    id: str
    owner_id: str
    original_name: str
    mime_type: str
    byte_size: int
    file_path: str
    status: DocumentStatus = DocumentStatus.PENDING
    extracted_text: str = ""
    is_processed: bool = False
    derived_fields: Optional[PropertyDetails] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    processing_started_at: Optional[datetime] = None

    class Settings:
        name = "vault_items"
        indexes = [
            IndexModel([("owner_id", 1), ("created_at", DESCENDING)]),
            IndexModel([("status", 1)]),
        ]

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "VaultItem":
        return cls(**record.model_dump())

    def to_record(self) -> DocumentRecord:
        return DocumentRecord(**self.model_dump(exclude={"revision_id"}))


class VaultUser(Document):
    id: str
    username: Indexed(str, unique=True)
    email: Indexed(str, unique=True)
    password_hash: str
    is_subscribed: bool = True
    pdpa_consent: bool = False
    pdpa_consent_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "users"

    @classmethod
    def from_record(cls, user: UserRecord) -> "VaultUser":
        return cls(**user.model_dump())

    def to_record(self) -> UserRecord:
        return UserRecord(**self.model_dump(exclude={"revision_id"}))
