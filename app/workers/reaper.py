"""
Periodic sweep for records stuck in "processing".

A record whose worker died (restart, cancelled task, lost store write)
would otherwise stay in processing forever. Records that have been
processing longer than stale_after seconds are moved to failed with a
diagnostic text. Pending records are left alone: failing them would skip
the processing state.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from app.exceptions import InvalidTransition, StoreUnavailable
from app.models.document import DocumentStatus, StatusPatch, utcnow
from app.stores.base import DocumentStore, bounded

logger = logging.getLogger(__name__)

STALE_TEXT = "OCR processing failed: processing did not finish in time and was abandoned"


class StaleProcessingReaper:
    def __init__(self, store: DocumentStore, stale_after: float, interval: float, store_timeout: float = 5.0) -> None:
        self.store = store
        self.store_timeout = store_timeout
        self.stale_after = timedelta(seconds=stale_after)
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """Fail every stale processing record. Returns how many were reaped."""
        now = now or utcnow()
        reaped = 0
        stuck = await bounded(self.store.list_by_status(DocumentStatus.PROCESSING), self.store_timeout)
        for record in stuck:
            started = record.processing_started_at or record.updated_at
            if now - started < self.stale_after:
                continue
            try:
                await bounded(
                    self.store.update_status(
                        record.id,
                        StatusPatch(status=DocumentStatus.FAILED, extracted_text=STALE_TEXT, is_processed=False),
                    ),
                    self.store_timeout,
                )
            except InvalidTransition:
                continue  # finished between list and update
            logger.warning("Reaped document %s stuck in processing since %s", record.id, started.isoformat())
            reaped += 1
        return reaped

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except StoreUnavailable:
                logger.warning("Reaper sweep skipped; store unavailable.")

    def start(self) -> None:
        if self.interval <= 0 or self._task is not None:
            return
        self._task = asyncio.create_task(self._loop(), name="stale-processing-reaper")
        logger.info("Reaper started (stale after %s, every %ss)", self.stale_after, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
