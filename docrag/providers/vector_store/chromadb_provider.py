"""ChromaDB vector store provider adapter.

Wraps a ``chromadb`` client collection to implement
:class:`IVectorStoreProvider`.  Records are stored with pre-computed
embeddings, the chunk content as the Chroma document, and the camelCase
metadata from :meth:`VectorRecord.to_wire`, so a filtered delete is simply
``where={"documentId": ...}``.

The chromadb client API is synchronous; every call is run in a worker
thread via :func:`asyncio.to_thread` to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Keep chromadb from phoning home before the module is imported.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import httpx
import structlog

from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.models.rag import VectorRecord
from docrag.utils.errors import TransientVectorStoreError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

# Failures of the transport rather than of the request itself.
_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
)

_DOCUMENT_ID_FIELD = "documentId"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that must never run.

    Every record arrives with its embedding already computed.  Without this,
    chromadb loads its default ONNX model when the collection is created.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("docrag supplies pre-computed embeddings")

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by one ChromaDB collection.

    Parameters
    ----------
    client:
        An open chromadb client (``PersistentClient``, ``HttpClient`` or
        ``EphemeralClient``).  Its lifetime belongs to the caller.
    collection_name:
        Collection to write into; created with cosine distance if missing.
    dimension:
        Expected embedding length.  Records of any other length are
        rejected before they reach the store.
    """

    def __init__(
        self,
        client: Any,
        collection_name: str = "docrag_documents",
        dimension: int | None = None,
    ) -> None:
        self._client = client
        self._collection_name = collection_name
        self._dimension = dimension
        # Collections created by older chromadb builds refuse a different
        # embedding function; reopen with whatever was persisted.
        try:
            self._collection = client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    @classmethod
    def persistent(
        cls,
        persist_directory: str,
        collection_name: str = "docrag_documents",
        dimension: int | None = None,
    ) -> ChromaDBProvider:
        """Build a provider over an on-disk ``PersistentClient``."""
        client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        return cls(client, collection_name=collection_name, dimension=dimension)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert_batch(self, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        self._check_dimensions(records)

        ids = [r.id for r in records]
        embeddings = [list(r.embedding) for r in records]
        documents = [r.metadata.content for r in records]
        metadatas = [r.metadata.to_wire() for r in records]

        await self._run(
            "upsert_batch",
            self._collection.upsert,
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )
        logger.debug("chromadb_upsert_batch", collection=self._collection_name, count=len(ids))
        return len(ids)

    async def delete_by_document(self, document_id: str) -> int:
        existing = await self._ids_where(document_id)
        if not existing:
            return 0
        await self._run(
            "delete_by_document",
            self._collection.delete,
            where={_DOCUMENT_ID_FIELD: document_id},
        )
        logger.info(
            "chromadb_delete_by_document",
            document_id=document_id,
            deleted_count=len(existing),
        )
        return len(existing)

    async def get_ids_by_document(self, document_id: str) -> set[str]:
        return set(await self._ids_where(document_id))

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._client.heartbeat()
        except Exception as exc:  # noqa: BLE001 - any failure means unreachable
            logger.warning("chromadb_unavailable", error=str(exc))
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_dimensions(self, records: list[VectorRecord]) -> None:
        if self._dimension is None:
            return
        for record in records:
            if len(record.embedding) != self._dimension:
                raise VectorStoreError(
                    message=(
                        f"embedding dimension mismatch for {record.id}: "
                        f"expected {self._dimension}, got {len(record.embedding)}"
                    ),
                    provider_name=self.get_provider_name(),
                )

    async def _ids_where(self, document_id: str) -> list[str]:
        result = await self._run(
            "get_ids_by_document",
            self._collection.get,
            where={_DOCUMENT_ID_FIELD: document_id},
            include=[],
        )
        return list(result["ids"]) if result else []

    async def _run(self, operation: str, func: Any, **kwargs: Any) -> Any:
        """Run a blocking collection call in a thread and translate its errors."""
        try:
            return await asyncio.to_thread(func, **kwargs)
        except _TRANSIENT_ERRORS as exc:
            raise TransientVectorStoreError(
                message=f"ChromaDB {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
