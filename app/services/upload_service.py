"""
Upload intake: validate an incoming file, store it, create the pending
record and hand it to the processing dispatcher.

Validation runs in a fixed order and fails fast; nothing is written to
disk or to the store until every check has passed.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, Optional

from bson import ObjectId

from app.exceptions import FileTooLarge, MissingFile, UnsupportedType, Unauthorized
from app.models.document import DocumentRecord, DocumentStatus
from app.stores.base import DocumentStore, bounded

logger = logging.getLogger(__name__)

# Declared MIME type alone is client-controlled; the extension must agree with it
EXTENSIONS_BY_MIME: Dict[str, FrozenSet[str]] = {
    "image/jpeg": frozenset({".jpg", ".jpeg"}),
    "image/png": frozenset({".png"}),
    "image/webp": frozenset({".webp"}),
    "application/pdf": frozenset({".pdf"}),
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class IncomingFile:
    name: str
    mime_type: str
    byte_size: int
    content: bytes


def safe_filename(name: str) -> str:
    """Strip any path and replace characters that are awkward on disk."""
    base = Path(name.replace("\\", "/")).name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "document"


class UploadIntake:
    def __init__(
        self,
        store: DocumentStore,
        upload_dir: str | Path,
        dispatch: Callable[[str], bool],
        max_bytes: int = 10 * 1024 * 1024,
        allowed_mime_types: Iterable[str] = tuple(EXTENSIONS_BY_MIME),
        store_timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.upload_dir = Path(upload_dir)
        self.dispatch = dispatch
        self.max_bytes = max_bytes
        self.allowed_mime_types = frozenset(m.lower() for m in allowed_mime_types)
        self.store_timeout = store_timeout

    def validate(
        self,
        owner_id: Optional[str],
        name: Optional[str],
        mime_type: Optional[str],
        byte_size: Optional[int],
    ) -> None:
        """
        Metadata-only checks, safe to run before the payload is read.
        byte_size may be None when the client did not declare it.
        """
        if not owner_id:
            raise Unauthorized()
        if not name:
            raise MissingFile()
        mime = (mime_type or "").split(";")[0].strip().lower()
        extension = Path(name).suffix.lower()
        if mime not in self.allowed_mime_types or extension not in EXTENSIONS_BY_MIME.get(mime, ()):
            raise UnsupportedType(
                f"Unsupported file type '{mime or 'unknown'}' ({extension or 'no extension'}). "
                "Only JPEG, PNG, WEBP and PDF files are accepted"
            )
        if byte_size is not None and byte_size > self.max_bytes:
            raise FileTooLarge(self._too_large_message())

    def _too_large_message(self) -> str:
        return f"File size exceeds {self.max_bytes // (1024 * 1024)} MB"

    async def submit(self, owner_id: Optional[str], upload: Optional[IncomingFile]) -> DocumentRecord:
        """
        Admit one file for owner_id and return its pending record.
        Processing is scheduled, not awaited.
        """
        if not owner_id:
            raise Unauthorized()
        if upload is None:
            raise MissingFile()
        self.validate(owner_id, upload.name, upload.mime_type, upload.byte_size)
        if len(upload.content) > self.max_bytes:
            raise FileTooLarge(self._too_large_message())
        if not upload.content:
            raise MissingFile("Uploaded file is empty")

        # ObjectId hex grows with creation time, so it doubles as a sort tie-breaker
        document_id = str(ObjectId())
        file_path = self.upload_dir / f"{document_id}_{safe_filename(upload.name)}"
        await asyncio.to_thread(self._write, file_path, upload.content)

        record = DocumentRecord(
            id=document_id,
            owner_id=owner_id,
            original_name=upload.name,
            mime_type=upload.mime_type.split(";")[0].strip().lower(),
            byte_size=len(upload.content),
            file_path=str(file_path),
            status=DocumentStatus.PENDING,
        )
        try:
            await bounded(self.store.create(record), self.store_timeout)
        except Exception:
            # No record means the stored bytes are orphaned
            file_path.unlink(missing_ok=True)
            raise
        logger.info("Saved upload %s (%d bytes) for owner %s", document_id, record.byte_size, owner_id)

        self.dispatch(record.id)
        return record

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
