"""Abstract base class for the document metadata store.

The metadata store owns each :class:`~docrag.models.document.Document`
record and therefore its lifecycle status.  Two operations carry the
ingestion lease and must be atomic in every implementation:

* :meth:`IMetadataStore.create` fails on an existing id, so two concurrent
  first-time ingestions of one id cannot both succeed;
* :meth:`IMetadataStore.update` with ``expected_statuses`` is a
  compare-and-set, so two re-ingestions of one id cannot both claim it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from docrag.models.document import Document, DocumentStatus, DocumentUpdate


# Concrete implementation: SQLiteMetadataStore (docrag/providers/metadata/)
class IMetadataStore(ABC):
    """Contract for persisting document records."""

    @abstractmethod
    async def open(self) -> None:
        """Acquire underlying resources (connections, schema)."""

    @abstractmethod
    async def close(self) -> None:
        """Release underlying resources.  Safe to call more than once."""

    @abstractmethod
    async def create(self, document: Document) -> Document:
        """Insert a new record.

        Raises
        ------
        docrag.utils.errors.DocumentExistsError
            If a record with the same ``document_id`` already exists.
        """

    @abstractmethod
    async def get(self, document_id: str) -> Document | None:
        """Return the record for *document_id*, or ``None``."""

    @abstractmethod
    async def list_all(self) -> list[Document]:
        """Return every record, most recently uploaded first."""

    @abstractmethod
    async def update(
        self,
        document_id: str,
        update: DocumentUpdate,
        expected_statuses: Iterable[DocumentStatus] | None = None,
    ) -> Document:
        """Apply *update* and return the new record.

        Parameters
        ----------
        document_id:
            Record to update.
        update:
            Fields to write; only explicitly set fields are applied.
        expected_statuses:
            When given, the update is applied only if the current status is
            one of these, atomically with the check.

        Raises
        ------
        docrag.utils.errors.DocumentNotFoundError
            If no record exists for *document_id*.
        docrag.utils.errors.StatusConflictError
            If *expected_statuses* was given and the current status is not
            among them.
        """

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Delete the record; return ``False`` if it did not exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
