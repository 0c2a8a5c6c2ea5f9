"""RAG data models: extracted text, chunks and vector records.

Defines Pydantic v2 models for the artefacts that flow through one
ingestion run:

    bytes ──extract──► ExtractedText ──chunk──► [Chunk] ──embed──► [VectorRecord]

``ExtractedText`` and ``Chunk`` are ephemeral; they live only for the
duration of a run.  ``VectorRecord`` is the unit written to the vector
index, and its ``metadata`` is denormalized (chunk content included) so
retrieval can return passages without a second lookup.

All models are frozen.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def vector_id(document_id: str, sequence_index: int) -> str:
    """Return the deterministic vector id for chunk *sequence_index* of a document.

    Stable ids make re-upserting a retried batch idempotent and let deletion
    reason about exactly which records a document owns.
    """
    return f"{document_id}-chunk-{sequence_index}"


# ---------------------------------------------------------------------------
# ExtractedText -- output of a text extractor.
# ---------------------------------------------------------------------------
class ExtractedText(BaseModel):
    """Normalized text pulled from a document.

    ``detail`` explains an empty result (e.g. an image-only PDF).  An empty
    result is not an extraction failure; it flows on to the chunker, which
    yields zero chunks, and the ingestion service reports it as
    :class:`~docrag.utils.errors.EmptyContentError`.
    """

    model_config = ConfigDict(frozen=True)

    text: str = ""
    page_count: int | None = Field(default=None, ge=0)
    detail: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @classmethod
    def nothing(cls, reason: str, page_count: int | None = None) -> ExtractedText:
        """The "no extractable text" sentinel for a nominally supported file."""
        return cls(text="", page_count=page_count, detail=reason)


# ---------------------------------------------------------------------------
# Chunk -- one overlapping window of a document's normalized text.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A bounded window of normalized text, ready for embedding.

    ``text`` is the raw window ``normalized[start:end]``; ``content`` is what
    gets embedded and stored: the window prefixed with the document context.
    The prefix never takes part in window arithmetic.
    """

    model_config = ConfigDict(frozen=True)

    sequence_index: int = Field(ge=0)
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str
    content: str

    @model_validator(mode="after")
    def _check_offsets(self) -> Chunk:
        if self.end - self.start != len(self.text):
            raise ValueError("chunk offsets do not match window length")
        return self

    @property
    def length(self) -> int:
        return self.end - self.start


# ---------------------------------------------------------------------------
# VectorRecord -- the unit stored in the vector index.
# ---------------------------------------------------------------------------
class VectorMetadata(BaseModel):
    """Metadata stored alongside each vector.

    Serialized in camelCase (``documentId``, ``fileType``) -- the canonical
    wire shape every vector store adapter writes and filters on.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    document_id: str
    content: str
    title: str
    file_type: str
    timestamp: str = Field(description="ISO-8601 time the vector was written.")

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class VectorRecord(BaseModel):
    """An embedding plus its id and denormalized metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    embedding: list[float] = Field(min_length=1, repr=False)
    metadata: VectorMetadata

    @classmethod
    def for_chunk(
        cls,
        document_id: str,
        chunk: Chunk,
        embedding: list[float],
        title: str,
        file_type: str,
        written_at: datetime,
    ) -> VectorRecord:
        return cls(
            id=vector_id(document_id, chunk.sequence_index),
            embedding=embedding,
            metadata=VectorMetadata(
                document_id=document_id,
                content=chunk.content,
                title=title,
                file_type=file_type,
                timestamp=written_at.isoformat(),
            ),
        )

    def to_wire(self) -> dict[str, object]:
        """Return ``{id, embedding, metadata}`` with camelCase metadata keys."""
        return {"id": self.id, "embedding": list(self.embedding), "metadata": self.metadata.to_wire()}
