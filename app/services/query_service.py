"""
Owner-scoped read access to document records.

Reads go straight to the store and never wait on the worker. A record that
belongs to someone else is reported exactly like a missing one.
"""

from typing import List

from app.exceptions import DocumentNotFound
from app.models.document import DocumentRecordView
from app.stores.base import DocumentStore, bounded


class StatusQueryService:
    def __init__(self, store: DocumentStore, store_timeout: float = 5.0) -> None:
        self.store = store
        self.store_timeout = store_timeout

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecordView]:
        """Owner's records, newest first."""
        records = await bounded(self.store.list_by_owner(owner_id), self.store_timeout)
        return [DocumentRecordView.from_record(r) for r in records if r.owner_id == owner_id]

    async def get(self, owner_id: str, document_id: str) -> DocumentRecordView:
        record = await bounded(self.store.get(document_id), self.store_timeout)
        if record is None or record.owner_id != owner_id:
            raise DocumentNotFound()
        return DocumentRecordView.from_record(record)
