"""
Background document processing worker.

Runs after upload, outside the request/response cycle: marks the record as
processing, reads the stored file, runs the extractor under a timeout and
records the outcome as completed or failed.

Every record mutation goes through DocumentStore.update_status, so the
forward-only status rules hold even if two workers race for the same id;
the loser of the pending -> processing transition simply stops. Extraction
errors end in the record's failed state and are never re-raised: a client
sees them only by polling.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from app.exceptions import ExtractionFailure, ExtractionTimeout, InvalidTransition, StoreUnavailable
from app.models.document import DocumentRecord, DocumentStatus, StatusPatch, utcnow
from app.services.extraction_service import ExtractionResult, Extractor
from app.stores.base import DocumentStore, bounded

logger = logging.getLogger(__name__)

FAILED_TEXT_PREFIX = "OCR processing failed"


class DocumentProcessor:
    def __init__(
        self,
        store: DocumentStore,
        extractor: Extractor,
        extraction_timeout: float = 30.0,
        store_timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.extraction_timeout = extraction_timeout
        self.store_timeout = store_timeout

    async def process_document(self, document_id: str) -> Optional[DocumentRecord]:
        """
        Full pipeline for one document. Returns the record as left by this
        call, or None if it could not be loaded.
        """
        record = await bounded(self.store.get(document_id), self.store_timeout)
        if record is None:
            logger.error("Document not found: %s", document_id)
            return None
        if record.status != DocumentStatus.PENDING:
            logger.info("Document %s already in status %s; skipping.", document_id, record.status.value)
            return record

        # Persisted before extraction starts so pollers never see a stale "pending"
        try:
            record = await bounded(
                self.store.update_status(
                    document_id,
                    StatusPatch(status=DocumentStatus.PROCESSING, processing_started_at=utcnow()),
                ),
                self.store_timeout,
            )
        except InvalidTransition:
            logger.info("Document %s was picked up by another worker; skipping.", document_id)
            return await bounded(self.store.get(document_id), self.store_timeout)
        logger.info("Started processing document %s (%s)", document_id, record.mime_type)

        try:
            result = await self._extract(record)
        except ExtractionFailure as e:
            logger.warning("Processing failed for document %s: %s", document_id, e.message)
            patch = StatusPatch(
                status=DocumentStatus.FAILED,
                extracted_text=f"{FAILED_TEXT_PREFIX}: {e.message}"[:500],
                is_processed=False,
            )
        else:
            patch = StatusPatch(
                status=DocumentStatus.COMPLETED,
                extracted_text=result.text,
                is_processed=True,
                derived_fields=result.derived_fields,
            )
        return await self._finish(document_id, patch)

    async def _extract(self, record: DocumentRecord) -> ExtractionResult:
        """Run the extractor, normalizing every failure mode to ExtractionFailure."""
        try:
            content = await asyncio.to_thread(Path(record.file_path).read_bytes)
        except FileNotFoundError as e:
            raise ExtractionFailure("uploaded file not found") from e

        try:
            result = await asyncio.wait_for(
                self.extractor.extract(content, record.mime_type, record.original_name),
                timeout=self.extraction_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionTimeout(f"extraction timed out after {self.extraction_timeout:g}s") from e
        except ExtractionFailure:
            raise
        except Exception as e:
            logger.exception("Extractor raised for document %s", record.id)
            raise ExtractionFailure(str(e) or e.__class__.__name__) from e

        if not result.text or not result.text.strip():
            raise ExtractionFailure("no text extracted")
        return result

    async def _finish(self, document_id: str, patch: StatusPatch) -> Optional[DocumentRecord]:
        try:
            record = await bounded(self.store.update_status(document_id, patch), self.store_timeout)
        except InvalidTransition as e:
            # The stale-processing reaper may have failed the record meanwhile
            logger.warning("Dropping %s result: %s", patch.status.value, e.message)
            return await bounded(self.store.get(document_id), self.store_timeout)
        except StoreUnavailable:
            logger.error("Could not record %s for document %s; store unavailable.", patch.status.value, document_id)
            return None
        logger.info("Document %s %s.", document_id, record.status.value)
        return record
