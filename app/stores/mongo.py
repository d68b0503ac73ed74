"""
MongoDB stores built on Beanie.

update_status is a single find-one-and-update whose filter includes the
statuses the patch may legally follow, so the transition check and the
write happen atomically on the server.
"""

import logging
from typing import List, Optional

from beanie.odm.queries.update import UpdateResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.exceptions import DocumentNotFound, InvalidTransition, StoreUnavailable, UserAlreadyExists
from app.models.document import ALLOWED_TRANSITIONS, DocumentRecord, DocumentStatus, StatusPatch
from app.models.user import UserRecord
from app.models.vault_item import VaultItem, VaultUser

logger = logging.getLogger(__name__)


def _predecessors(status: DocumentStatus) -> List[str]:
    return [s.value for s, nxt in ALLOWED_TRANSITIONS.items() if status in nxt]


def _encode(changes: dict) -> dict:
    encoded = {}
    for key, value in changes.items():
        if isinstance(value, DocumentStatus):
            value = value.value
        elif hasattr(value, "model_dump"):
            value = value.model_dump()
        encoded[key] = value
    return encoded


class MongoDocumentStore:
    async def create(self, record: DocumentRecord) -> str:
        try:
            await VaultItem.from_record(record).insert()
        except DuplicateKeyError as e:
            raise ValueError(f"Document {record.id} already exists") from e
        except PyMongoError as e:
            logger.error("Insert failed for document %s: %s", record.id, e)
            raise StoreUnavailable() from e
        return record.id

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        try:
            item = await VaultItem.get(document_id)
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return item.to_record() if item else None

    async def update_status(self, document_id: str, patch: StatusPatch) -> DocumentRecord:
        try:
            item = await VaultItem.find_one(
                {"_id": document_id, "status": {"$in": _predecessors(patch.status)}}
            ).update(
                {"$set": _encode(patch.changes())},
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
            if item is not None:
                return item.to_record()
            current = await VaultItem.get(document_id)
        except PyMongoError as e:
            logger.error("Status update failed for document %s: %s", document_id, e)
            raise StoreUnavailable() from e
        if current is None:
            raise DocumentNotFound()
        raise InvalidTransition(
            f"Document {document_id}: cannot move from {current.status.value} to {patch.status.value}"
        )

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]:
        # Ids are ObjectId hex, so _id orders records created in the same instant
        try:
            items = (
                await VaultItem.find({"owner_id": owner_id})
                .sort("-created_at", "-_id")
                .to_list()
            )
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return [i.to_record() for i in items]

    async def list_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        try:
            items = await VaultItem.find({"status": status.value}).to_list()
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return [i.to_record() for i in items]


class MongoUserStore:
    async def create(self, user: UserRecord) -> UserRecord:
        try:
            await VaultUser.from_record(user).insert()
        except DuplicateKeyError as e:
            raise UserAlreadyExists() from e
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return user

    async def get(self, user_id: str) -> Optional[UserRecord]:
        try:
            user = await VaultUser.get(user_id)
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return user.to_record() if user else None

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            user = await VaultUser.find_one({"email": email})
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return user.to_record() if user else None

    async def update(self, user_id: str, **changes) -> Optional[UserRecord]:
        try:
            user = await VaultUser.find_one({"_id": user_id}).update(
                {"$set": changes},
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        except PyMongoError as e:
            raise StoreUnavailable() from e
        return user.to_record() if user else None
