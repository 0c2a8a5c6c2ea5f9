"""Document lifecycle models -- the metadata record for one uploaded file.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph -- no imports from upper layers).
#
# ``Document`` is the durable record the metadata store persists.  Its
# ``status`` field is the single source of truth for where an ingestion run
# stands, and doubles as the ingestion lease: while a record is UPLOADING or
# PROCESSING no second run may touch that id.
#
#     UPLOADING ──► PROCESSING ──► COMPLETED
#                        │
#                        └────────► ERROR ──(re-ingest)──► PROCESSING
#
# Key design decisions:
#   - **Immutable state**: models are frozen.  Stages never mutate a
#     Document; they describe a change with ``DocumentUpdate`` and the store
#     returns the new record.
#   - **Invariants at construction**: a COMPLETED record without counts or
#     an ERROR record without a message cannot be built, so a store that
#     hands one back fails loudly instead of leaking inconsistent state.
#   - **Closed update type**: ``DocumentUpdate`` forbids unknown fields, so
#     descriptive fields (title, filename, ...) cannot be rewritten by a
#     pipeline stage.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Lifecycle states for an uploaded document."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_in_flight(self) -> bool:
        """True while an ingestion attempt holds the lease on the document."""
        return self in (DocumentStatus.UPLOADING, DocumentStatus.PROCESSING)


IN_FLIGHT_STATUSES = frozenset({DocumentStatus.UPLOADING, DocumentStatus.PROCESSING})
TERMINAL_STATUSES = frozenset({DocumentStatus.COMPLETED, DocumentStatus.ERROR})


class Document(BaseModel):
    """Metadata record for one uploaded document."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(min_length=1, description="Primary key, immutable once created.")
    title: str = Field(min_length=1, description="Display title, filename without extension by default.")
    filename: str = Field(min_length=1, description="Original upload filename.")
    file_type: str = Field(min_length=1, description='Lower-cased extension, e.g. "pdf".')
    file_size: int = Field(ge=0, description="Upload size in bytes.")
    uploaded_at: datetime = Field(default_factory=utc_now)
    processed_at: datetime | None = Field(default=None, description="Set only on success.")
    status: DocumentStatus = DocumentStatus.UPLOADING
    error_message: str | None = Field(default=None, description="Set only when status is error.")
    chunk_count: int | None = Field(default=None, ge=0)
    vector_count: int | None = Field(default=None, ge=0)
    content_length: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_lifecycle_invariants(self) -> Document:
        if self.status is DocumentStatus.COMPLETED:
            if self.processed_at is None:
                raise ValueError("completed document requires processed_at")
            if not self.vector_count or self.chunk_count != self.vector_count:
                raise ValueError(
                    "completed document requires chunk_count == vector_count > 0 "
                    f"(got chunk_count={self.chunk_count}, vector_count={self.vector_count})"
                )
        elif self.status is DocumentStatus.ERROR:
            if not self.error_message:
                raise ValueError("error document requires error_message")
            if self.chunk_count is not None or self.vector_count is not None:
                raise ValueError("error document must not carry chunk/vector counts")
        return self

    @property
    def is_in_flight(self) -> bool:
        return self.status.is_in_flight

    def apply(self, update: DocumentUpdate) -> Document:
        """Return a copy of this record with *update* applied and re-validated."""
        return Document.model_validate({**self.model_dump(), **update.changes()})


class DocumentUpdate(BaseModel):
    """Partial update a pipeline stage may apply to a :class:`Document`.

    Only fields explicitly passed are written (``exclude_unset``); passing
    ``None`` clears a column.  Unknown fields are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: DocumentStatus | None = None
    processed_at: datetime | None = None
    error_message: str | None = None
    chunk_count: int | None = Field(default=None, ge=0)
    vector_count: int | None = Field(default=None, ge=0)
    content_length: int | None = Field(default=None, ge=0)

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were explicitly set."""
        return self.model_dump(exclude_unset=True)

    @classmethod
    def processing(cls) -> DocumentUpdate:
        """Enter PROCESSING and clear anything left by a previous attempt."""
        return cls(
            status=DocumentStatus.PROCESSING,
            processed_at=None,
            error_message=None,
            chunk_count=None,
            vector_count=None,
            content_length=None,
        )

    @classmethod
    def completed(
        cls,
        chunk_count: int,
        vector_count: int,
        content_length: int,
        processed_at: datetime | None = None,
    ) -> DocumentUpdate:
        """The single terminal success transition."""
        return cls(
            status=DocumentStatus.COMPLETED,
            processed_at=processed_at or utc_now(),
            error_message=None,
            chunk_count=chunk_count,
            vector_count=vector_count,
            content_length=content_length,
        )

    @classmethod
    def failed(cls, message: str) -> DocumentUpdate:
        """Terminal failure transition; counts are cleared."""
        return cls(
            status=DocumentStatus.ERROR,
            processed_at=None,
            error_message=message,
            chunk_count=None,
            vector_count=None,
            content_length=None,
        )


class DocumentUpload(BaseModel):
    """Raw bytes and declared metadata handed to the ingestion service.

    ``file_type`` defaults to the filename extension and ``title`` to the
    filename without extension; both are resolved by the ingestion service.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    data: bytes = Field(repr=False)
    title: str | None = None
    file_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)
