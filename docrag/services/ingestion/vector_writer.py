"""Ordered, batched writes of vector records.

``write`` submits fixed-size batches one after another; a batch is only sent
once the previous one has succeeded, so after a failure the store holds a
clean prefix of the document's records.  Each batch runs under a timeout and
transient failures are retried.  Because record ids are deterministic, a
retried batch overwrites whatever a timed-out attempt may have written.
"""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

import structlog

from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.models.rag import VectorRecord
from docrag.utils.errors import (
    PartialWriteError,
    TransientVectorStoreError,
    ValidationError,
    VectorStoreError,
)
from docrag.utils.retry import call_with_retry

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

DEFAULT_UPSERT_BATCH_SIZE = 100


class VectorStoreWriter:
    """Batches upserts and document deletes against a vector store provider."""

    def __init__(
        self,
        store: IVectorStoreProvider,
        batch_size: int = DEFAULT_UPSERT_BATCH_SIZE,
        timeout: float | None = 30.0,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
    ) -> None:
        if batch_size <= 0:
            raise ValidationError(f"batch_size must be positive, got {batch_size}")
        self._store = store
        self._batch_size = batch_size
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max

    async def write(self, records: list[VectorRecord]) -> int:
        """Upsert *records* in order; return the number written.

        Raises
        ------
        PartialWriteError
            When a batch fails after at least one earlier batch succeeded.
        VectorStoreError
            When the first batch fails (nothing was written).
        """
        written = 0
        for offset in range(0, len(records), self._batch_size):
            batch = records[offset : offset + self._batch_size]
            try:
                written += await self._call(
                    "upsert_batch", lambda batch=batch: self._store.upsert_batch(batch)
                )
            except VectorStoreError as exc:
                if written == 0:
                    raise
                raise PartialWriteError(
                    message=f"{exc.message} ({written} of {len(records)} vectors already written)",
                    written=written,
                    provider_name=exc.provider_name,
                ) from exc
            logger.debug(
                "vector_batch_upserted",
                batch_start=offset,
                batch_size=len(batch),
                written=written,
            )
        return written

    async def delete_document(self, document_id: str) -> int:
        """Delete all vectors of *document_id*; a document with none is a no-op."""
        deleted = await self._call(
            "delete_by_document", lambda: self._store.delete_by_document(document_id)
        )
        logger.info("document_vectors_deleted", document_id=document_id, deleted=deleted)
        return deleted

    async def ids_for_document(self, document_id: str) -> set[str]:
        return await self._call(
            "get_ids_by_document", lambda: self._store.get_ids_by_document(document_id)
        )

    async def _call(self, operation: str, call: Callable[[], Awaitable[_T]]) -> _T:
        return await call_with_retry(
            operation,
            call,
            timeout=self._timeout,
            retry_on=(TransientVectorStoreError,),
            timeout_error=lambda msg: TransientVectorStoreError(
                message=msg, provider_name=self._store.get_provider_name()
            ),
            max_attempts=self._max_attempts,
            backoff_base=self._backoff_base,
            backoff_max=self._backoff_max,
        )
