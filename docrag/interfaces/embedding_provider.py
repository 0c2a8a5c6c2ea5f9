"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-dimension vectors.  The
ingestion pipeline never talks to an embedding API directly; it goes through
:class:`~docrag.services.ingestion.embedding_generator.EmbeddingGenerator`,
which splits work into batches no larger than :meth:`get_max_batch_size`
and retries transient failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (docrag/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for one batch of texts.

        Parameters
        ----------
        texts:
            At most :meth:`get_max_batch_size` strings.  Implementations
            make a single upstream call; batching is the caller's job.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        docrag.utils.errors.TransientEmbeddingError
            On rate limiting, timeouts or connection failures.
        docrag.utils.errors.EmbeddingProviderError
            On any other provider failure.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text (e.g. a search query)."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the lifetime of the provider and must match the
        dimension the vector store was created with.
        """

    @abstractmethod
    def get_max_batch_size(self) -> int:
        """Return the largest number of texts accepted by one :meth:`embed` call."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-3-small"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
