"""
Wiring of stores, services and workers for one application instance.

Built in the app lifespan and kept on app.state; routes reach it through
the get_services dependency.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from app.config import Settings
from app.services.extraction_service import Extractor, SimulatedOcrExtractor
from app.services.query_service import StatusQueryService
from app.services.upload_service import UploadIntake
from app.stores.base import DocumentStore, UserStore
from app.workers.dispatcher import ProcessingDispatcher
from app.workers.document_processor import DocumentProcessor
from app.workers.reaper import StaleProcessingReaper


@dataclass
class VaultServices:
    settings: Settings
    document_store: DocumentStore
    user_store: UserStore
    intake: UploadIntake
    queries: StatusQueryService
    processor: DocumentProcessor
    dispatcher: ProcessingDispatcher
    reaper: StaleProcessingReaper


def build_services(
    settings: Settings,
    document_store: DocumentStore,
    user_store: UserStore,
    extractor: Optional[Extractor] = None,
) -> VaultServices:
    """Must be called with a running event loop (the dispatcher owns a semaphore)."""
    extractor = extractor or SimulatedOcrExtractor(delay_seconds=settings.simulated_ocr_delay_seconds)
    processor = DocumentProcessor(
        document_store,
        extractor,
        extraction_timeout=settings.extraction_timeout_seconds,
        store_timeout=settings.store_timeout_seconds,
    )
    dispatcher = ProcessingDispatcher(processor, max_concurrency=settings.max_concurrent_extractions)
    intake = UploadIntake(
        document_store,
        upload_dir=settings.upload_dir,
        dispatch=dispatcher.submit,
        max_bytes=settings.max_upload_bytes,
        allowed_mime_types=settings.allowed_mime_types,
        store_timeout=settings.store_timeout_seconds,
    )
    return VaultServices(
        settings=settings,
        document_store=document_store,
        user_store=user_store,
        intake=intake,
        queries=StatusQueryService(document_store, store_timeout=settings.store_timeout_seconds),
        processor=processor,
        dispatcher=dispatcher,
        reaper=StaleProcessingReaper(
            document_store,
            stale_after=settings.stale_processing_seconds,
            interval=settings.reaper_interval_seconds,
            store_timeout=settings.store_timeout_seconds,
        ),
    )


def get_services(request: Request) -> VaultServices:
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
