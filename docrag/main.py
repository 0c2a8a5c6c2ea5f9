"""Composition root: builds the ingestion pipeline from :class:`Settings`.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# This is the only module that constructs concrete providers.  Everything
# below it receives its collaborators through constructors, so tests can
# swap any of them for fakes by passing them to ``open_pipeline``.
#
#   Settings ──► OpenAIEmbeddingProvider ──► EmbeddingGenerator ─┐
#            ──► ChromaDBProvider ─────────► VectorStoreWriter ──┼─► IngestionService
#            ──► SQLiteMetadataStore ────────────────────────────┤
#            ──► DocumentTextExtractor + TextChunker ────────────┘
#                                                                └─► DeletionService
#
# ``open_pipeline`` owns the metadata store's connection: it is opened on
# entry and closed on exit, even when the body raises.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.metadata_store import IMetadataStore
from docrag.interfaces.text_extractor import ITextExtractor
from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.services.deletion_service import DeletionService
from docrag.services.ingestion.chunker import TextChunker
from docrag.services.ingestion.embedding_generator import EmbeddingGenerator
from docrag.services.ingestion.ingestion_service import IngestionService
from docrag.services.ingestion.vector_writer import VectorStoreWriter

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class Pipeline:
    """The assembled services sharing one set of stores."""

    ingestion: IngestionService
    deletion: DeletionService
    metadata_store: IMetadataStore


def _build_embedding_provider(settings: Settings) -> IEmbeddingProvider:
    from docrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

    return OpenAIEmbeddingProvider(settings=settings)


def _build_vector_store(settings: Settings, dimension: int) -> IVectorStoreProvider:
    # Deferred: importing chromadb is slow and only needed here.
    from docrag.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider.persistent(
        settings.chromadb_persist_dir,
        collection_name=settings.chromadb_collection,
        dimension=dimension,
    )


def _build_metadata_store(settings: Settings) -> IMetadataStore:
    from docrag.providers.metadata.sqlite_metadata_store import SQLiteMetadataStore

    return SQLiteMetadataStore(settings.metadata_db_path)


def _build_extractor() -> ITextExtractor:
    from docrag.providers.extraction.document_extractor import DocumentTextExtractor

    return DocumentTextExtractor()


@asynccontextmanager
async def open_pipeline(
    settings: Settings,
    *,
    embedding_provider: IEmbeddingProvider | None = None,
    vector_store: IVectorStoreProvider | None = None,
    metadata_store: IMetadataStore | None = None,
    extractor: ITextExtractor | None = None,
) -> AsyncIterator[Pipeline]:
    """Assemble the pipeline, yield it, and release its resources on exit.

    Any collaborator passed explicitly is used as-is; the rest are built
    from *settings*.
    """
    embedding_provider = embedding_provider or _build_embedding_provider(settings)
    vector_store = vector_store or _build_vector_store(settings, embedding_provider.get_dimension())
    metadata_store = metadata_store or _build_metadata_store(settings)
    extractor = extractor or _build_extractor()

    chunker = TextChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)
    generator = EmbeddingGenerator(
        embedding_provider,
        batch_size=settings.embedding_batch_size,
        timeout=settings.embedding_timeout,
        max_attempts=settings.max_retry_attempts,
        backoff_base=settings.retry_backoff_base,
        backoff_max=settings.retry_backoff_max,
    )
    writer = VectorStoreWriter(
        vector_store,
        batch_size=settings.vector_upsert_batch_size,
        timeout=settings.vector_store_timeout,
        max_attempts=settings.max_retry_attempts,
        backoff_base=settings.retry_backoff_base,
        backoff_max=settings.retry_backoff_max,
    )

    await metadata_store.open()
    try:
        logger.info(
            "pipeline_ready",
            embedding_provider=embedding_provider.get_provider_name(),
            vector_store=vector_store.get_provider_name(),
            metadata_store=metadata_store.get_provider_name(),
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
        )
        yield Pipeline(
            ingestion=IngestionService(
                extractor=extractor,
                chunker=chunker,
                embedding_generator=generator,
                vector_writer=writer,
                metadata_store=metadata_store,
                max_file_size=settings.max_file_size,
                extraction_timeout=settings.extraction_timeout,
                compensate_partial_writes=settings.compensate_partial_writes,
            ),
            deletion=DeletionService(metadata_store, writer),
            metadata_store=metadata_store,
        )
    finally:
        await metadata_store.close()
