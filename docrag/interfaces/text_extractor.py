"""Abstract base class for document text extractors.

An extractor turns raw upload bytes of a declared type into normalized
text.  It is synchronous and CPU-bound; the ingestion service runs it in a
worker thread under the configured extraction timeout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docrag.models.rag import ExtractedText


# Concrete implementation: DocumentTextExtractor (docrag/providers/extraction/)
class ITextExtractor(ABC):
    """Contract for per-format text extraction."""

    @abstractmethod
    def supported_types(self) -> frozenset[str]:
        """Return the lower-cased file types this extractor handles."""

    @abstractmethod
    def extract(self, data: bytes, file_type: str) -> ExtractedText:
        """Extract and normalize the text of one document.

        Parameters
        ----------
        data:
            The raw file bytes.
        file_type:
            Lower-cased type, e.g. ``"pdf"``.

        Returns
        -------
        ExtractedText
            The normalized text, or :meth:`ExtractedText.nothing` when the
            document is readable but holds no text.

        Raises
        ------
        docrag.utils.errors.UnsupportedFormatError
            If *file_type* is not in :meth:`supported_types`.
        docrag.utils.errors.ExtractionError
            If the bytes are corrupt or cannot be decoded.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this extractor."""
