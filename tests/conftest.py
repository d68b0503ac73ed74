"""Shared fixtures: test settings, stored records, PDFs and auth tokens."""

import io
from pathlib import Path
from typing import Callable, Dict

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.api.auth import create_access_token
from app.config import Settings
from app.models.document import DocumentRecord, DocumentStatus

TEST_JWT_SECRET = "test-secret-with-enough-length-for-hs256-signing"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        store_backend="memory",
        jwt_secret=TEST_JWT_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        simulated_ocr_delay_seconds=0,
        extraction_timeout_seconds=2,
        reaper_interval_seconds=0,
    )


@pytest.fixture()
def token_for(settings: Settings) -> Callable[[str], Dict[str, str]]:
    """Authorization headers for an arbitrary owner id."""

    def _headers(owner_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(owner_id, settings)}"}

    return _headers


@pytest.fixture()
def make_record(tmp_path: Path) -> Callable[..., DocumentRecord]:
    """Pending record whose file exists on disk."""
    counter = {"n": 0}

    def _make(owner_id: str = "u1", name: str = "grant.png", mime_type: str = "image/png", **overrides) -> DocumentRecord:
        counter["n"] += 1
        document_id = overrides.pop("id", f"doc{counter['n']}")
        path = tmp_path / f"{document_id}_{name}"
        path.write_bytes(b"\x89PNG fake image bytes")
        fields = dict(
            id=document_id,
            owner_id=owner_id,
            original_name=name,
            mime_type=mime_type,
            byte_size=path.stat().st_size,
            file_path=str(path),
            status=DocumentStatus.PENDING,
        )
        fields.update(overrides)
        return DocumentRecord(**fields)

    return _make


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Single-page PDF with labelled property grant fields."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Owner Name: Tan Ah Kow")
    c.drawString(72, 700, "Survey No: SN-4471/2")
    c.drawString(72, 680, "Registration Date: 14/03/2019")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()
