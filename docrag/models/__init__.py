"""Pydantic models shared across the pipeline."""

from docrag.models.document import (
    Document,
    DocumentStatus,
    DocumentUpdate,
    DocumentUpload,
)
from docrag.models.pipeline import (
    ConsistencyReport,
    DeletionResult,
    IngestionResult,
    IngestionStage,
)
from docrag.models.rag import Chunk, ExtractedText, VectorMetadata, VectorRecord, vector_id

__all__ = [
    "Chunk",
    "ConsistencyReport",
    "DeletionResult",
    "Document",
    "DocumentStatus",
    "DocumentUpdate",
    "DocumentUpload",
    "ExtractedText",
    "IngestionResult",
    "IngestionStage",
    "VectorMetadata",
    "VectorRecord",
    "vector_id",
]
