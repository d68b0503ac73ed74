"""In-memory stores, used by default and in tests."""

import asyncio
import itertools
from typing import Dict, List, Optional, Tuple

from app.exceptions import DocumentNotFound, UserAlreadyExists
from app.models.document import DocumentRecord, DocumentStatus, StatusPatch
from app.models.user import UserRecord
from app.stores.base import check_transition


class InMemoryDocumentStore:
    """
    Records live in a dict keyed by id, with a per-owner index so listing is
    proportional to the owner's records only. Records are frozen models and
    every update swaps in a new object under the lock, so readers always see
    either the old or the new record.
    """

    def __init__(self) -> None:
        self._records: Dict[str, DocumentRecord] = {}
        self._by_owner: Dict[str, List[str]] = {}
        # Insertion sequence breaks created_at ties between concurrent uploads
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = asyncio.Lock()

    async def create(self, record: DocumentRecord) -> str:
        async with self._lock:
            if record.id in self._records:
                raise ValueError(f"Document {record.id} already exists")
            self._records[record.id] = record
            self._by_owner.setdefault(record.owner_id, []).append(record.id)
            self._seq[record.id] = next(self._counter)
        return record.id

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        return self._records.get(document_id)

    async def update_status(self, document_id: str, patch: StatusPatch) -> DocumentRecord:
        async with self._lock:
            current = self._records.get(document_id)
            if current is None:
                raise DocumentNotFound()
            check_transition(current, patch)
            updated = current.model_copy(update=patch.changes())
            self._records[document_id] = updated
        return updated

    def _sort_key(self, record: DocumentRecord) -> Tuple:
        return (record.created_at, self._seq[record.id])

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]:
        records = [self._records[i] for i in self._by_owner.get(owner_id, [])]
        return sorted(records, key=self._sort_key, reverse=True)

    async def list_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        return [r for r in self._records.values() if r.status == status]


class InMemoryUserStore:
    def __init__(self) -> None:
        self._users: Dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, user: UserRecord) -> UserRecord:
        async with self._lock:
            for existing in self._users.values():
                if existing.email == user.email or existing.username == user.username:
                    raise UserAlreadyExists()
            self._users[user.id] = user
        return user

    async def get(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def update(self, user_id: str, **changes) -> Optional[UserRecord]:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update=changes)
            self._users[user_id] = updated
        return updated
