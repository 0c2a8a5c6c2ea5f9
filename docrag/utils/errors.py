"""Custom exception hierarchy for docrag.

All application exceptions inherit from :class:`DocRagError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "openai", "chromadb", "sqlite") caused the failure.

The hierarchy is organized by pipeline stage:

    DocRagError  (base -- catch-all for any docrag error)
    +-- ValidationError            (bad input before pipeline entry)
    |   +-- UnsupportedFormatError (declared type outside the supported set)
    +-- ExtractionError            (corrupt or unreadable document bytes)
    +-- EmptyContentError          (document normalizes to no text)
    +-- EmbeddingProviderError     (embedding API failure, terminal)
    |   +-- TransientEmbeddingError    (rate limit / network -- retryable)
    +-- VectorStoreError           (vector index failure, terminal)
    |   +-- TransientVectorStoreError  (network / timeout -- retryable)
    |   +-- PartialWriteError          (a later batch failed; earlier ones stored)
    +-- MetadataStoreError         (document record persistence failure)
    |   +-- DocumentExistsError    (create() on an id that already exists)
    |   +-- StatusConflictError    (compare-and-set update lost the race)
    +-- DocumentNotFoundError      (get / delete of an unknown id)
    +-- ConcurrentIngestionError   (ingestion lease already held)
    +-- IngestionError             (structured failure of one ingestion run)
    +-- ConfigurationError         (startup / missing config)

Callers retry on the ``Transient*`` subtypes only; everything else is
terminal for the current attempt.
"""

from __future__ import annotations


class DocRagError(Exception):
    """Base exception for all docrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Intake / extraction errors
# ---------------------------------------------------------------------------

class ValidationError(DocRagError):
    """Raised when an upload is rejected before it enters the pipeline."""

    def __init__(
        self,
        message: str = "Invalid document upload",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFormatError(ValidationError):
    """Raised when the declared file type is outside the supported set."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(DocRagError):
    """Raised when document bytes are corrupt or cannot be read."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyContentError(DocRagError):
    """Raised when a document yields no text to chunk.

    Not retried: the same bytes always produce the same empty result.
    """

    def __init__(
        self,
        message: str = "Document contains no extractable text",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class EmbeddingProviderError(DocRagError):
    """Raised when the embedding provider rejects a request or returns bad output."""

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TransientEmbeddingError(EmbeddingProviderError):
    """Embedding failure worth retrying (rate limit, timeout, connection reset)."""

    def __init__(
        self,
        message: str = "Embedding provider temporarily unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(DocRagError):
    """Raised when a vector store upsert or delete fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TransientVectorStoreError(VectorStoreError):
    """Vector store failure worth retrying (network error, timeout)."""

    def __init__(
        self,
        message: str = "Vector store temporarily unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PartialWriteError(VectorStoreError):
    """A vector batch failed after earlier batches of the same document were written.

    ``written`` counts the records already in the store.
    """

    def __init__(
        self,
        message: str = "Vector write stopped part way",
        written: int = 0,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._written = written

    @property
    def written(self) -> int:
        return self._written


class MetadataStoreError(DocRagError):
    """Raised when the document metadata store cannot complete an operation."""

    def __init__(
        self,
        message: str = "Metadata store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentExistsError(MetadataStoreError):
    """Raised by ``create()`` when the document id is already taken."""

    def __init__(
        self,
        message: str = "Document already exists",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StatusConflictError(MetadataStoreError):
    """Raised when a conditional update finds the record in an unexpected status."""

    def __init__(
        self,
        message: str = "Document status changed concurrently",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Coordination errors
# ---------------------------------------------------------------------------

class DocumentNotFoundError(DocRagError):
    """Raised on lookup or deletion of a document id that does not exist."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConcurrentIngestionError(DocRagError):
    """Raised when a document id is already ``uploading`` or ``processing``."""

    def __init__(
        self,
        message: str = "An ingestion attempt is already running for this document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(DocRagError):
    """Structured failure of a single ingestion run.

    Raised by :class:`~docrag.services.ingestion.ingestion_service.IngestionService`
    after the failing stage has been recorded on the document (``status=error``).
    The originating exception is available as ``__cause__``.

    ``status_recorded`` is ``False`` when even the error-status update
    failed; the record may then still read ``processing`` and needs operator
    attention.
    """

    def __init__(
        self,
        message: str = "Document ingestion failed",
        document_id: str = "",
        stage: str = "",
        status_recorded: bool = True,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._document_id = document_id
        self._stage = stage
        self._status_recorded = status_recorded

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def stage(self) -> str:
        return self._stage

    @property
    def status_recorded(self) -> bool:
        return self._status_recorded


class ConfigurationError(DocRagError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
