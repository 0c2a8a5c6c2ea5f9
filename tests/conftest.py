"""Shared pytest fixtures for the docrag test suite."""

from __future__ import annotations

import hashlib
import struct
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.models.rag import VectorRecord
from docrag.providers.extraction.document_extractor import DocumentTextExtractor
from docrag.providers.metadata.sqlite_metadata_store import SQLiteMetadataStore
from docrag.services.deletion_service import DeletionService
from docrag.services.ingestion.chunker import TextChunker
from docrag.services.ingestion.embedding_generator import EmbeddingGenerator
from docrag.services.ingestion.ingestion_service import IngestionService
from docrag.services.ingestion.vector_writer import VectorStoreWriter

EMBEDDING_DIM = 16


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit-length vector by hashing *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = [v / 0xFFFFFFFF + 0.01 for v in struct.unpack(f"<{dim}I", raw[: dim * 4])]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider.

    ``failures`` is a queue of exceptions raised by successive ``embed``
    calls (``None`` entries let a call through).  Every call's batch is
    recorded in ``calls``.
    """

    def __init__(self, max_batch_size: int = 2048, dimension: int = EMBEDDING_DIM) -> None:
        self._max_batch_size = max_batch_size
        self._dimension = dimension
        self.calls: list[list[str]] = []
        self.failures: list[BaseException | None] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        return [hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_max_batch_size(self) -> int:
        return self._max_batch_size

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-backed vector store with per-call failure injection.

    ``upsert_failures`` is a queue consumed by successive ``upsert_batch``
    calls, like :attr:`MockEmbeddingProvider.failures`.
    """

    def __init__(self) -> None:
        self.records: dict[str, VectorRecord] = {}
        self.upsert_calls: list[list[str]] = []
        self.upsert_failures: list[BaseException | None] = []
        self.delete_failures: list[BaseException | None] = []

    async def upsert_batch(self, records: list[VectorRecord]) -> int:
        self.upsert_calls.append([r.id for r in records])
        if self.upsert_failures:
            failure = self.upsert_failures.pop(0)
            if failure is not None:
                raise failure
        for record in records:
            self.records[record.id] = record
        return len(records)

    async def delete_by_document(self, document_id: str) -> int:
        if self.delete_failures:
            failure = self.delete_failures.pop(0)
            if failure is not None:
                raise failure
        doomed = [rid for rid, r in self.records.items() if r.metadata.document_id == document_id]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)

    async def get_ids_by_document(self, document_id: str) -> set[str]:
        return {rid for rid, r in self.records.items() if r.metadata.document_id == document_id}

    def get_provider_name(self) -> str:
        return "in-memory"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
async def metadata_store(tmp_path: Path) -> AsyncIterator[SQLiteMetadataStore]:
    """An open SQLiteMetadataStore on a temporary database file."""
    store = SQLiteMetadataStore(db_path=tmp_path / "documents.db")
    await store.open()
    yield store
    await store.close()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at temporary paths with fast retries."""
    return Settings(
        openai_api_key="sk-test-key",
        chromadb_persist_dir=str(tmp_path / "chromadb"),
        metadata_db_path=str(tmp_path / "documents.db"),
        retry_backoff_base=0.0,
        retry_backoff_max=0.0,
        app_env="test",
    )


def build_services(
    embedding_provider: MockEmbeddingProvider,
    vector_store: InMemoryVectorStore,
    metadata_store: SQLiteMetadataStore,
    *,
    chunk_size: int = 2000,
    chunk_overlap: int = 400,
    upsert_batch_size: int = 100,
    compensate_partial_writes: bool = False,
    embedding_timeout: float | None = 5.0,
    vector_store_timeout: float | None = 5.0,
    max_attempts: int = 3,
    max_file_size: int = 100 * 1024 * 1024,
) -> tuple[IngestionService, DeletionService]:
    """Wire real services around the given fakes, with zero retry backoff."""
    writer = VectorStoreWriter(
        vector_store,
        batch_size=upsert_batch_size,
        timeout=vector_store_timeout,
        max_attempts=max_attempts,
        backoff_base=0.0,
        backoff_max=0.0,
    )
    ingestion = IngestionService(
        extractor=DocumentTextExtractor(),
        chunker=TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap),
        embedding_generator=EmbeddingGenerator(
            embedding_provider,
            timeout=embedding_timeout,
            max_attempts=max_attempts,
            backoff_base=0.0,
            backoff_max=0.0,
        ),
        vector_writer=writer,
        metadata_store=metadata_store,
        max_file_size=max_file_size,
        compensate_partial_writes=compensate_partial_writes,
    )
    return ingestion, DeletionService(metadata_store, writer)


@pytest.fixture
def sample_text() -> str:
    """A few paragraphs of prose, a little over 4000 characters."""
    paragraph = (
        "Retrieval systems split long documents into overlapping windows so that "
        "each passage fits the embedding model. Every window keeps some of the "
        "text before it! That way a sentence near a boundary is never lost. "
        "Does the overlap cost storage? Yes, but only a fixed fraction.\n"
        "Line breaks inside a paragraph are weaker boundaries than blank lines."
    )
    return "\n\n".join(f"Section {i}. {paragraph}" for i in range(1, 13))
