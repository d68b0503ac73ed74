"""
PDF text extraction service.

Uses PyPDF2 to extract raw text from uploaded PDF bytes.
Extraction is CPU-bound; the extractor runs it in a thread pool to avoid
blocking the event loop.
"""

import io
import logging
from typing import List

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

logger = logging.getLogger(__name__)


def extract_text_from_pdf(content: bytes) -> str:
    """
    Extract all text from PDF bytes.
    Returns "" for scanned (image-only) PDFs; raises PdfReadError on corrupt input.
    """
    reader = PdfReader(io.BytesIO(content))
    parts: List[str] = []
    for page in reader.pages:
        text = page.extract_text()
        if text:
            parts.append(text)
    return "\n".join(parts)


def try_extract_text_from_pdf(content: bytes) -> str:
    """Like extract_text_from_pdf, but an unreadable PDF just yields no text."""
    try:
        return extract_text_from_pdf(content)
    except (PdfReadError, ValueError) as e:
        logger.warning("PDF text layer unreadable: %s", e)
        return ""
