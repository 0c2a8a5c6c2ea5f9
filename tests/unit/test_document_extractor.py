"""Unit tests for DocumentTextExtractor across the supported formats."""

from __future__ import annotations

import io

import docx
import fitz
import pytest

from docrag.providers.extraction.document_extractor import DocumentTextExtractor
from docrag.utils.errors import ExtractionError, UnsupportedFormatError


def _make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _make_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        t = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                t.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def extractor() -> DocumentTextExtractor:
    return DocumentTextExtractor()


class TestPlainText:
    def test_txt_is_normalized(self, extractor: DocumentTextExtractor) -> None:
        result = extractor.extract(b"Hello   world\r\n\r\n\r\nSecond  paragraph", "txt")

        assert result.text == "Hello world\n\nSecond paragraph"
        assert result.detail is None

    def test_md_with_bom(self, extractor: DocumentTextExtractor) -> None:
        result = extractor.extract(b"\xef\xbb\xbf# Title\n\nBody", "md")

        assert result.text == "# Title\n\nBody"

    def test_type_is_case_insensitive(self, extractor: DocumentTextExtractor) -> None:
        assert extractor.extract(b"text", "TXT").text == "text"

    def test_invalid_utf8_is_extraction_error(self, extractor: DocumentTextExtractor) -> None:
        with pytest.raises(ExtractionError, match="UTF-8"):
            extractor.extract(b"\xff\xfe\xfa broken", "txt")

    def test_whitespace_only_returns_sentinel(self, extractor: DocumentTextExtractor) -> None:
        result = extractor.extract(b"   \n\n\t ", "txt")

        assert result.is_empty
        assert "no extractable text" in (result.detail or "")


class TestPdf:
    def test_extracts_pages(self, extractor: DocumentTextExtractor) -> None:
        result = extractor.extract(_make_pdf("First page text", "Second page text"), "pdf")

        assert "First page text" in result.text
        assert "Second page text" in result.text
        assert result.page_count == 2

    def test_blank_pdf_returns_sentinel(self, extractor: DocumentTextExtractor) -> None:
        result = extractor.extract(_make_pdf("", ""), "pdf")

        assert result.is_empty
        assert result.page_count == 2

    def test_corrupt_pdf_is_extraction_error(self, extractor: DocumentTextExtractor) -> None:
        with pytest.raises(ExtractionError):
            extractor.extract(b"this is not a pdf at all", "pdf")


class TestDocx:
    def test_paragraphs_and_tables(self, extractor: DocumentTextExtractor) -> None:
        data = _make_docx(["Opening paragraph.", "", "Closing paragraph."], [["Name", "Value"]])

        result = extractor.extract(data, "docx")

        assert result.text == "Opening paragraph.\n\nClosing paragraph.\n\nName | Value"

    def test_corrupt_docx_is_extraction_error(self, extractor: DocumentTextExtractor) -> None:
        with pytest.raises(ExtractionError):
            extractor.extract(b"PK\x03\x04 not a zip", "docx")


def test_unsupported_type_rejected(extractor: DocumentTextExtractor) -> None:
    with pytest.raises(UnsupportedFormatError):
        extractor.extract(b"data", "exe")


def test_supported_types(extractor: DocumentTextExtractor) -> None:
    assert extractor.supported_types() == frozenset({"pdf", "docx", "txt", "md"})
