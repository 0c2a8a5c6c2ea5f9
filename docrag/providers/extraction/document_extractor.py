"""Default text extractor for PDF, DOCX, plain-text and Markdown uploads.

* ``pdf``  -- PyMuPDF (``fitz``), text layer page by page.  Image-only scans
  yield the "no extractable text" sentinel; OCR is not attempted.
* ``docx`` -- python-docx, body paragraphs followed by table cells.
* ``txt`` / ``md`` -- decoded as UTF-8 (a leading BOM is tolerated).

All output passes through :func:`~docrag.utils.text_normalizer.normalize_text`.
"""

from __future__ import annotations

import io

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from docrag.interfaces.text_extractor import ITextExtractor
from docrag.models.rag import ExtractedText
from docrag.utils.errors import ExtractionError, UnsupportedFormatError
from docrag.utils.text_normalizer import normalize_text

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_TYPES: frozenset[str] = frozenset({"pdf", "docx", "txt", "md"})


class DocumentTextExtractor(ITextExtractor):
    """Extracts normalized text from in-memory document bytes."""

    def supported_types(self) -> frozenset[str]:
        return SUPPORTED_TYPES

    def get_provider_name(self) -> str:
        return "document_extractor"

    def extract(self, data: bytes, file_type: str) -> ExtractedText:
        file_type = file_type.lower().lstrip(".")
        if file_type not in SUPPORTED_TYPES:
            raise UnsupportedFormatError(
                message=f"Unsupported file type: {file_type or '<none>'}",
                provider_name=self.get_provider_name(),
            )

        if file_type == "pdf":
            raw, page_count = self._extract_pdf(data)
        elif file_type == "docx":
            raw, page_count = self._extract_docx(data), None
        else:
            raw, page_count = self._decode_text(data), None

        text = normalize_text(raw)
        if not text:
            logger.warning("no_text_extracted", file_type=file_type, page_count=page_count)
            return ExtractedText.nothing(
                f"{file_type} document contains no extractable text",
                page_count=page_count,
            )

        logger.debug(
            "text_extracted",
            file_type=file_type,
            page_count=page_count,
            characters=len(text),
        )
        return ExtractedText(text=text, page_count=page_count)

    # ------------------------------------------------------------------
    # Per-format readers
    # ------------------------------------------------------------------

    def _extract_pdf(self, data: bytes) -> tuple[str, int]:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Unreadable PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(doc) == 0:
            doc.close()
            raise ExtractionError(
                message="PDF has no pages",
                provider_name=self.get_provider_name(),
            )
        try:
            pages = [doc[page_num].get_text("text") for page_num in range(len(doc))]
        except Exception as exc:
            raise ExtractionError(
                message=f"PDF text extraction failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            doc.close()

        return "\n\n".join(page.strip() for page in pages if page.strip()), len(pages)

    def _extract_docx(self, data: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as exc:
            raise ExtractionError(
                message=f"Unreadable DOCX: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        blocks = [para.text for para in document.paragraphs if para.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))
        return "\n\n".join(blocks)

    def _decode_text(self, data: bytes) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(
                message=f"Text file is not valid UTF-8: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
