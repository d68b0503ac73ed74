"""
Document upload and status APIs.

POST /documents: validate and store the upload, create a pending record,
schedule background processing and return immediately.
GET /documents: the caller's records, newest first (polled by the dashboard).
GET /documents/{id}: one record, 404 unless the caller owns it.
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from app.api.auth import get_current_owner
from app.exceptions import MissingFile
from app.models.document import DocumentRecordSummary, DocumentRecordView, UploadResponse
from app.services.container import VaultServices, get_services
from app.services.upload_service import IncomingFile

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadResponse,
    summary="Upload a property grant document",
)
async def upload_document(
    owner_id: Annotated[str, Depends(get_current_owner)],
    services: Annotated[VaultServices, Depends(get_services)],
    document: Annotated[Optional[UploadFile], File()] = None,
) -> UploadResponse:
    """
    Accept a JPEG/PNG/WEBP/PDF file in the "document" form field. The
    response only confirms the pending record; poll GET /documents for the
    OCR outcome.
    """
    intake = services.intake
    if document is None:
        raise MissingFile()

    content_type = document.content_type or ""
    # Metadata checks first so a rejected file is never read into memory
    intake.validate(owner_id, document.filename, content_type, document.size)
    # Read at most one byte past the limit; enough to tell it is too big
    content = await document.read(intake.max_bytes + 1)

    record = await intake.submit(
        owner_id,
        IncomingFile(
            name=document.filename or "document",
            mime_type=content_type,
            byte_size=len(content),
            content=content,
        ),
    )
    return UploadResponse(item=DocumentRecordSummary.from_record(record))


@router.get(
    "",
    response_model=List[DocumentRecordView],
    summary="List documents",
)
async def list_documents(
    owner_id: Annotated[str, Depends(get_current_owner)],
    services: Annotated[VaultServices, Depends(get_services)],
) -> List[DocumentRecordView]:
    return await services.queries.list_by_owner(owner_id)


@router.get(
    "/{document_id}",
    response_model=DocumentRecordView,
    summary="Get document status",
)
async def get_document(
    document_id: str,
    owner_id: Annotated[str, Depends(get_current_owner)],
    services: Annotated[VaultServices, Depends(get_services)],
) -> DocumentRecordView:
    """Only the owner can see a record; anyone else gets 404."""
    return await services.queries.get(owner_id, document_id)
