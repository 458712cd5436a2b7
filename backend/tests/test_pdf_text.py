"""
Unit tests for PDF text helpers.
"""
import io

import pytest
from pypdf import PdfWriter

from cramify.errors import InputValidationError
from cramify.pdf_text import clamp_text, extract_text_from_pdf, normalize_whitespace


def _blank_pdf(pages=2):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class TestNormalizeWhitespace:

    def test_collapses(self):
        assert normalize_whitespace("a \t b\r\n\n\n\nc  ") == "a b\n\nc"

    def test_empty(self):
        assert normalize_whitespace(None) == ""


class TestClampText:

    def test_within_limit(self):
        assert clamp_text("abc", 3) == "abc"

    def test_truncated_marker(self):
        assert clamp_text("abcdefgh", 3) == "abc\n\n[TRUNCATED: 5 chars removed]"

    def test_no_limit(self):
        assert clamp_text("abcdefgh", 0) == "abcdefgh"


class TestExtractText:

    def test_blank_pages(self):
        assert extract_text_from_pdf(_blank_pdf()) == ""

    def test_empty_bytes(self):
        assert extract_text_from_pdf(b"") == ""

    def test_not_a_pdf(self):
        with pytest.raises(InputValidationError):
            extract_text_from_pdf(b"definitely not a pdf")
