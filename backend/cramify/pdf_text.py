from __future__ import annotations

import io
import logging
import re

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .errors import InputValidationError

logger = logging.getLogger(__name__)


def normalize_whitespace(text: str) -> str:
    text = str(text or "").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_text_from_pdf(data: bytes) -> str:
    """Plain text of every page, pages separated by a blank line."""
    if not data:
        return ""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "") for page in reader.pages]
    except (PyPdfError, ValueError) as e:
        raise InputValidationError(f"Could not read PDF: {e}") from e
    logger.debug("Extracted text from %d PDF page(s)", len(pages))
    return normalize_whitespace("".join(f"{p}\n\n" for p in pages))


def clamp_text(text: str, max_chars: int) -> str:
    text = str(text or "")
    if not max_chars or len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n\n[TRUNCATED: {len(text) - max_chars} chars removed]"
