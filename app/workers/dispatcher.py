"""
Hands uploaded documents to the processor without blocking the request.

Each accepted id becomes one asyncio task on the running loop; a semaphore
caps how many extractions run at once. An id is refused while its task is
in flight and forgotten once the task ends; after that a retried hand-off
finds the record past pending and the processor skips it.
"""

import asyncio
import logging
from typing import Set

from app.workers.document_processor import DocumentProcessor

logger = logging.getLogger(__name__)


class ProcessingDispatcher:
    def __init__(self, processor: DocumentProcessor, max_concurrency: int = 4) -> None:
        self.processor = processor
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._accepted: Set[str] = set()
        # Strong references; the loop only keeps weak ones to running tasks
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, document_id: str) -> bool:
        """Schedule processing. Returns False if this id is already in flight."""
        if document_id in self._accepted:
            logger.warning("Document %s already dispatched; ignoring duplicate.", document_id)
            return False
        self._accepted.add(document_id)
        task = asyncio.create_task(self._run(document_id), name=f"process-{document_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _task: self._accepted.discard(document_id))
        logger.debug("Dispatched document %s (%d in flight)", document_id, len(self._tasks))
        return True

    async def _run(self, document_id: str) -> None:
        async with self._semaphore:
            try:
                await self.processor.process_document(document_id)
            except Exception:
                # Keeps one record's store error from surfacing as an unretrieved task exception
                logger.exception("Unhandled error while processing document %s", document_id)

    async def drain(self) -> None:
        """Wait until every dispatched document has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight work; affected records stay in processing for the reaper."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight document tasks.", len(tasks))
