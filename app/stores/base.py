"""
Store contracts shared by the in-memory and MongoDB backends.

The document store is the only shared mutable state in the service. All
record mutation goes through create() and update_status(), which is where
the forward-only status rules are enforced.
"""

import asyncio
import logging
from typing import Awaitable, List, Optional, Protocol, TypeVar

from app.exceptions import InvalidTransition, StoreUnavailable
from app.models.document import DocumentRecord, DocumentStatus, StatusPatch, can_transition
from app.models.user import UserRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentStore(Protocol):
    async def create(self, record: DocumentRecord) -> str:
        """Persist a new record and return its id."""
        ...

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        ...

    async def update_status(self, document_id: str, patch: StatusPatch) -> DocumentRecord:
        """
        Apply patch atomically and return the updated record.
        Raises DocumentNotFound for unknown ids and InvalidTransition when
        patch.status is not a legal successor of the stored status.
        """
        ...

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]:
        """Owner's records, newest first."""
        ...

    async def list_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        ...


class UserStore(Protocol):
    async def create(self, user: UserRecord) -> UserRecord:
        """Raises UserAlreadyExists when the email or username is taken."""
        ...

    async def get(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    async def update(self, user_id: str, **changes) -> Optional[UserRecord]:
        ...


def check_transition(record: DocumentRecord, patch: StatusPatch) -> None:
    if not can_transition(record.status, patch.status):
        raise InvalidTransition(
            f"Document {record.id}: cannot move from {record.status.value} to {patch.status.value}"
        )


async def bounded(awaitable: Awaitable[T], timeout: float) -> T:
    """Await a store call, turning a hang into StoreUnavailable."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("Store call exceeded %.1fs", timeout)
        raise StoreUnavailable() from e
