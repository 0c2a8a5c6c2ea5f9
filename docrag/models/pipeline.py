"""Result models for the ingestion and deletion coordinators."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from docrag.models.document import DocumentStatus


class IngestionStage(str, Enum):
    """Stages of one ingestion run, in execution order.

    Used to label failures: a document's ``error_message`` reads
    ``"<stage>: <cause>"``.
    """

    INTAKE = "intake"
    EXTRACTION = "extraction"
    CHUNKING = "chunking"
    CLEANUP = "cleanup"
    EMBEDDING = "embedding"
    STORAGE = "storage"
    FINALIZE = "finalize"


class IngestionResult(BaseModel):
    """Summary of a successful ingestion run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str
    chunk_count: int = Field(ge=1)
    vector_count: int = Field(ge=1)
    content_length: int = Field(ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")


class DeletionResult(BaseModel):
    """Outcome of deleting one document from both stores."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    vectors_deleted: int = Field(ge=0)
    metadata_deleted: bool


class ConsistencyReport(BaseModel):
    """Cross-store view of one document, used to spot residual states.

    ``problems`` is empty when the vector ids present are exactly the ones
    the metadata record implies.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: DocumentStatus
    chunk_count: int | None
    vector_ids_present: int = Field(ge=0)
    missing_ids: list[str] = Field(default_factory=list)
    unexpected_ids: list[str] = Field(default_factory=list)
    problems: list[str] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.problems
