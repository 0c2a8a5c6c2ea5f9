"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **intake -> extract -> chunk -> embed -> store -> finalize**.

The :class:`IngestionService` coordinates five collaborators (text
extractor, chunker, embedding generator, vector writer, metadata store)
without any of them knowing about each other, and keeps the document's
metadata record in step with what actually reached the vector index:

    1. Intake -- validate the upload, take the ingestion lease
       (``uploading``), then enter ``processing``
    2. ITextExtractor -- bytes to normalized text (worker thread, timeout)
    3. TextChunker -- overlapping windows with the document title as context
    4. EmbeddingGenerator -- one vector per chunk, batched and retried
    5. VectorStoreWriter -- ordered upsert batches, retried
    6. Finalize -- ``completed`` with chunk/vector counts

A failure in any stage after intake is recorded on the document
(``status=error``, ``error_message="<stage>: <cause>"``) and re-raised as
:class:`~docrag.utils.errors.IngestionError`.  No vectors are written before
every chunk has an embedding, so extraction, chunking and embedding
failures never leave vectors behind.  Only a storage failure may leave a
prefix of batches in place, and only while compensation is off.

The lease is the record's status: while it is ``uploading`` or
``processing`` every other request for the same id is rejected with
:class:`~docrag.utils.errors.ConcurrentIngestionError`.  Taking it is atomic
in the metadata store (``create`` rejects duplicates; re-ingestion claims
the record with a compare-and-set update).
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING

import structlog

from docrag.models.document import (
    IN_FLIGHT_STATUSES,
    TERMINAL_STATUSES,
    Document,
    DocumentStatus,
    DocumentUpdate,
    DocumentUpload,
    utc_now,
)
from docrag.models.pipeline import IngestionResult, IngestionStage
from docrag.models.rag import Chunk, VectorRecord
from docrag.utils.errors import (
    ConcurrentIngestionError,
    DocRagError,
    DocumentExistsError,
    EmptyContentError,
    ExtractionError,
    IngestionError,
    StatusConflictError,
    UnsupportedFormatError,
    ValidationError,
    VectorStoreError,
)
from docrag.utils.text_normalizer import file_extension, strip_extension

if TYPE_CHECKING:
    from docrag.interfaces.metadata_store import IMetadataStore
    from docrag.interfaces.text_extractor import ITextExtractor
    from docrag.models.rag import ExtractedText
    from docrag.services.ingestion.chunker import TextChunker
    from docrag.services.ingestion.embedding_generator import EmbeddingGenerator
    from docrag.services.ingestion.vector_writer import VectorStoreWriter

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB


def new_document_id() -> str:
    """Return a fresh id of the form ``doc-<epoch ms>-<8 hex chars>``."""
    return f"doc-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class IngestionService:
    """Drives one document at a time from raw bytes to stored vectors.

    Distinct documents may be ingested concurrently from the same instance;
    all per-run state lives on the stack of :meth:`ingest`.

    Parameters
    ----------
    extractor:
        Bytes-to-text capability.
    chunker:
        Window layout over the extracted text.
    embedding_generator:
        Batched embedding of chunk contents.
    vector_writer:
        Batched upserts and document deletes.
    metadata_store:
        Owner of the document record and its status.
    max_file_size:
        Uploads larger than this many bytes are rejected at intake.
    extraction_timeout:
        Seconds allowed for text extraction; ``None`` disables the limit.
    compensate_partial_writes:
        When a storage batch fails, delete the vectors earlier batches
        already wrote instead of leaving them for inspection.
    """

    def __init__(
        self,
        extractor: ITextExtractor,
        chunker: TextChunker,
        embedding_generator: EmbeddingGenerator,
        vector_writer: VectorStoreWriter,
        metadata_store: IMetadataStore,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        extraction_timeout: float | None = 120.0,
        compensate_partial_writes: bool = False,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedder = embedding_generator
        self._writer = vector_writer
        self._store = metadata_store
        self._max_file_size = max_file_size
        self._extraction_timeout = extraction_timeout
        self._compensate = compensate_partial_writes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, upload: DocumentUpload, document_id: str | None = None) -> IngestionResult:
        """Ingest one uploaded document.

        Parameters
        ----------
        upload:
            Raw bytes plus declared filename, title and type.
        document_id:
            Id to ingest under.  When omitted a new id is generated.  An
            existing id whose record is ``error`` or ``completed`` is
            re-ingested: its old vectors are replaced.

        Returns
        -------
        IngestionResult
            Counts and timing of the completed run.

        Raises
        ------
        ValidationError
            The upload was rejected before any record was created or changed.
        ConcurrentIngestionError
            Another attempt holds the lease on *document_id*.
        IngestionError
            A stage failed after intake; ``stage`` names it and ``__cause__``
            holds the original error.
        """
        started = time.monotonic()
        file_type, title = self._validate_upload(upload)
        if document_id is not None and not document_id.strip():
            raise ValidationError("document_id must not be blank")
        doc_id = document_id or new_document_id()

        with structlog.contextvars.bound_contextvars(document_id=doc_id):
            document, reingest = await self._acquire_lease(doc_id, upload, file_type, title)
            logger.info(
                "ingestion_started",
                filename=upload.filename,
                file_type=file_type,
                file_size=upload.size,
                reingest=reingest,
            )

            stage = IngestionStage.INTAKE
            try:
                await self._store.update(
                    doc_id,
                    DocumentUpdate.processing(),
                    expected_statuses=IN_FLIGHT_STATUSES,
                )

                stage = IngestionStage.EXTRACTION
                extracted = await self._extract(upload.data, file_type)

                stage = IngestionStage.CHUNKING
                chunks = self._chunk(extracted, document.title)

                if reingest:
                    stage = IngestionStage.CLEANUP
                    await self._writer.delete_document(doc_id)

                stage = IngestionStage.EMBEDDING
                embeddings = await self._embedder.embed_chunks([c.content for c in chunks])

                stage = IngestionStage.STORAGE
                vector_count = await self._store_vectors(document, chunks, embeddings)

                stage = IngestionStage.FINALIZE
                await self._store.update(
                    doc_id,
                    DocumentUpdate.completed(
                        chunk_count=len(chunks),
                        vector_count=vector_count,
                        content_length=len(extracted.text),
                    ),
                    expected_statuses={DocumentStatus.PROCESSING},
                )
            except asyncio.CancelledError:
                logger.warning("ingestion_cancelled", stage=stage.value)
                await asyncio.shield(self._record_failure(doc_id, stage, "ingestion cancelled"))
                raise
            except Exception as exc:
                raise await self._fail(doc_id, stage, exc) from exc

            elapsed = time.monotonic() - started
            logger.info(
                "ingestion_completed",
                chunks=len(chunks),
                vectors=vector_count,
                content_length=len(extracted.text),
                elapsed_s=round(elapsed, 2),
            )
            return IngestionResult(
                document_id=doc_id,
                title=document.title,
                chunk_count=len(chunks),
                vector_count=vector_count,
                content_length=len(extracted.text),
                ingestion_time=elapsed,
            )

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def _validate_upload(self, upload: DocumentUpload) -> tuple[str, str]:
        """Return the resolved ``(file_type, title)`` or raise ValidationError."""
        filename = upload.filename.strip()
        if not filename:
            raise ValidationError("filename is required")
        if upload.size == 0:
            raise ValidationError(f"{filename} is empty")
        if upload.size > self._max_file_size:
            raise ValidationError(
                f"{filename} is {upload.size} bytes; the limit is {self._max_file_size}"
            )

        file_type = (upload.file_type or file_extension(filename)).lower().lstrip(".")
        if file_type not in self._extractor.supported_types():
            supported = ", ".join(sorted(self._extractor.supported_types()))
            raise UnsupportedFormatError(
                f"Unsupported file type {file_type or '<none>'!r}; supported: {supported}"
            )

        title = (upload.title or "").strip() or strip_extension(filename)
        return file_type, title

    async def _acquire_lease(
        self,
        doc_id: str,
        upload: DocumentUpload,
        file_type: str,
        title: str,
    ) -> tuple[Document, bool]:
        """Create or reclaim the record in an in-flight state.

        Returns the record and whether this is a re-ingestion.
        """
        existing = await self._store.get(doc_id)
        if existing is None:
            try:
                created = await self._store.create(
                    Document(
                        document_id=doc_id,
                        title=title,
                        filename=upload.filename.strip(),
                        file_type=file_type,
                        file_size=upload.size,
                        status=DocumentStatus.UPLOADING,
                    )
                )
            except DocumentExistsError as exc:
                raise ConcurrentIngestionError(
                    f"Document {doc_id} was created by a concurrent request"
                ) from exc
            return created, False

        if existing.is_in_flight:
            raise ConcurrentIngestionError(
                f"Document {doc_id} is already {existing.status.value}"
            )
        if existing.file_type != file_type:
            raise ValidationError(
                f"Document {doc_id} is a {existing.file_type} document; got {file_type}"
            )
        try:
            claimed = await self._store.update(
                doc_id,
                DocumentUpdate(status=DocumentStatus.UPLOADING, error_message=None),
                expected_statuses=TERMINAL_STATUSES,
            )
        except StatusConflictError as exc:
            raise ConcurrentIngestionError(
                f"Document {doc_id} was claimed by a concurrent request"
            ) from exc
        return claimed, True

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _extract(self, data: bytes, file_type: str) -> ExtractedText:
        try:
            extracted = await asyncio.wait_for(
                asyncio.to_thread(self._extractor.extract, data, file_type),
                timeout=self._extraction_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractionError(
                message=f"extraction timed out after {self._extraction_timeout}s",
                provider_name=self._extractor.get_provider_name(),
            ) from exc
        logger.debug("extraction_finished", characters=len(extracted.text))
        return extracted

    def _chunk(self, extracted: ExtractedText, title: str) -> list[Chunk]:
        chunks = self._chunker.chunk(extracted.text, title)
        if not chunks:
            raise EmptyContentError(extracted.detail or "Document contains no extractable text")
        logger.debug("chunking_finished", chunks=len(chunks))
        return chunks

    async def _store_vectors(
        self,
        document: Document,
        chunks: list[Chunk],
        embeddings: list[list[float]],
    ) -> int:
        written_at = utc_now()
        records = [
            VectorRecord.for_chunk(
                document_id=document.document_id,
                chunk=chunk,
                embedding=embedding,
                title=document.title,
                file_type=document.file_type,
                written_at=written_at,
            )
            for chunk, embedding in zip(chunks, embeddings, strict=True)
        ]
        written = await self._writer.write(records)
        if written != len(records):
            raise VectorStoreError(f"vector store acknowledged {written} of {len(records)} records")
        return written

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    async def _fail(self, doc_id: str, stage: IngestionStage, exc: Exception) -> IngestionError:
        """Record *exc* on the document and build the error to raise.

        Vectors this run wrote are removed:

        * on a storage failure, if ``compensate_partial_writes`` is set;
        * on a finalize failure, since a full vector set may only exist
          under a ``completed`` record;
        * whenever the failure cannot be recorded, e.g. the record was
          force-deleted mid-run and no longer owns them.
        """
        cause = str(exc)
        writes_vectors = stage in (IngestionStage.STORAGE, IngestionStage.FINALIZE)
        cleaned_up = False
        if stage is IngestionStage.FINALIZE or (stage is IngestionStage.STORAGE and self._compensate):
            cause = await self._remove_written_vectors(doc_id, cause)
            cleaned_up = True

        status_recorded = await self._record_failure(doc_id, stage, cause)
        if writes_vectors and not status_recorded and not cleaned_up:
            await self._remove_written_vectors(doc_id, cause)

        logger.error(
            "ingestion_failed",
            stage=stage.value,
            error=cause,
            error_type=type(exc).__name__,
            status_recorded=status_recorded,
        )
        return IngestionError(
            message=f"{stage.value}: {cause}",
            document_id=doc_id,
            stage=stage.value,
            status_recorded=status_recorded,
        )

    async def _remove_written_vectors(self, doc_id: str, cause: str) -> str:
        """Delete the vectors of a failed run; return the cause to record."""
        try:
            removed = await self._writer.delete_document(doc_id)
        except DocRagError as cleanup_exc:
            logger.error("written_vectors_cleanup_failed", error=str(cleanup_exc))
            return f"{cause} (cleanup of written vectors failed: {cleanup_exc})"
        logger.info("written_vectors_cleaned_up", vectors_removed=removed)
        return cause

    async def _record_failure(self, doc_id: str, stage: IngestionStage, cause: str) -> bool:
        """Set ``status=error``; return ``False`` if the update itself failed."""
        try:
            await self._store.update(
                doc_id,
                DocumentUpdate.failed(f"{stage.value}: {cause}"),
                expected_statuses=IN_FLIGHT_STATUSES,
            )
        except DocRagError as record_exc:
            logger.error(
                "failure_status_not_recorded",
                stage=stage.value,
                error=str(record_exc),
            )
            return False
        return True
