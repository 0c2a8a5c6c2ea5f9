"""Abstract base class for vector-store providers.

Defines the contract for writing and removing a document's vector records.
Every record carries ``documentId`` in its metadata; filtered deletes and id
listings key on that field, which is what lets the deletion coordinator
remove a document's vectors without knowing how many were written.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docrag.models.rag import VectorRecord


# Concrete implementation: ChromaDBProvider (docrag/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the vector index used by the ingestion pipeline.

    Methods are async so network-backed stores do not block the event loop.
    Providers do no batching or retrying of their own;
    :class:`~docrag.services.ingestion.vector_writer.VectorStoreWriter`
    owns both.
    """

    @abstractmethod
    async def upsert_batch(self, records: list[VectorRecord]) -> int:
        """Insert or replace *records* by id.

        Parameters
        ----------
        records:
            One batch of records.  Re-upserting an id overwrites it, so a
            retried batch is idempotent.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        docrag.utils.errors.TransientVectorStoreError
            On network failures or timeouts.
        docrag.utils.errors.VectorStoreError
            On any other failure, including a dimension mismatch.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> int:
        """Delete every record whose ``documentId`` equals *document_id*.

        Deleting a document with no records is a successful no-op.

        Returns
        -------
        int
            Number of records removed.
        """

    @abstractmethod
    async def get_ids_by_document(self, document_id: str) -> set[str]:
        """Return the ids of all records belonging to *document_id*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
