"""Deletion, lookup and consistency inspection of ingested documents.

Deletion removes a document's vectors first and its metadata record second.
Both steps are idempotent, so if the second step fails the whole call can
simply be repeated: the vectors are already gone, and the record, still
present, keeps the document discoverable for the retry.  The reverse order
could orphan vectors that nothing references any more.
"""

from __future__ import annotations

import structlog

from docrag.interfaces.metadata_store import IMetadataStore
from docrag.models.document import Document, DocumentStatus
from docrag.models.pipeline import ConsistencyReport, DeletionResult
from docrag.models.rag import vector_id
from docrag.services.ingestion.vector_writer import VectorStoreWriter
from docrag.utils.errors import ConcurrentIngestionError, DocumentNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class DeletionService:
    """Removes documents from both stores and reports on their state."""

    def __init__(self, metadata_store: IMetadataStore, vector_writer: VectorStoreWriter) -> None:
        self._store = metadata_store
        self._writer = vector_writer

    async def delete(self, document_id: str, force: bool = False) -> DeletionResult:
        """Delete *document_id* from the vector index, then from the metadata store.

        Parameters
        ----------
        document_id:
            Document to remove.
        force:
            Also delete a record that is still ``uploading`` or
            ``processing`` (e.g. left behind by a crashed process).

        Raises
        ------
        DocumentNotFoundError
            No record exists for *document_id*.  Nothing is touched.
        ConcurrentIngestionError
            The record is in flight and *force* is not set.
        """
        document = await self.get(document_id)
        if document.is_in_flight and not force:
            raise ConcurrentIngestionError(
                f"Document {document_id} is {document.status.value}; "
                "wait for ingestion to finish or delete with force"
            )

        log = logger.bind(document_id=document_id)
        vectors_deleted = await self._writer.delete_document(document_id)
        metadata_deleted = await self._store.delete(document_id)
        if not metadata_deleted:
            log.warning("metadata_already_deleted", vectors_deleted=vectors_deleted)

        log.info(
            "document_deleted",
            status=document.status.value,
            vectors_deleted=vectors_deleted,
            forced=force and document.is_in_flight,
        )
        return DeletionResult(
            document_id=document_id,
            vectors_deleted=vectors_deleted,
            metadata_deleted=metadata_deleted,
        )

    async def get(self, document_id: str) -> Document:
        """Return the record for *document_id* or raise DocumentNotFoundError."""
        document = await self._store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    async def list_documents(self) -> list[Document]:
        """Return all records, most recently uploaded first."""
        return await self._store.list_all()

    async def inspect(self, document_id: str) -> ConsistencyReport:
        """Compare the metadata record of *document_id* with the vectors present.

        Flags the states the protocol can leave behind: partial vectors on a
        failed document, and a completed document whose vector ids are not
        exactly ``<id>-chunk-0 .. <id>-chunk-(chunk_count - 1)``.
        """
        document = await self.get(document_id)
        present = await self._writer.ids_for_document(document_id)

        expected: set[str] = set()
        if document.status is DocumentStatus.COMPLETED:
            expected = {vector_id(document_id, i) for i in range(document.chunk_count or 0)}

        missing = sorted(expected - present)
        unexpected = sorted(present - expected)
        problems: list[str] = []

        if document.status is DocumentStatus.COMPLETED:
            if not present:
                problems.append("completed document has no vectors")
            elif missing:
                problems.append(f"{len(missing)} of {len(expected)} expected vectors missing")
            if unexpected:
                problems.append(f"{len(unexpected)} vectors beyond chunk_count")
        elif document.status is DocumentStatus.ERROR and present:
            problems.append(f"{len(present)} partial vectors left by a failed ingestion")

        report = ConsistencyReport(
            document_id=document_id,
            status=document.status,
            chunk_count=document.chunk_count,
            vector_ids_present=len(present),
            missing_ids=missing,
            # In-flight documents are still being written; only counts are meaningful.
            unexpected_ids=[] if document.is_in_flight else unexpected,
            problems=problems,
        )
        logger.info(
            "document_inspected",
            document_id=document_id,
            status=document.status.value,
            vectors_present=len(present),
            consistent=report.is_consistent,
        )
        return report
