"""Batched, order-preserving embedding of chunk contents.

Wraps an :class:`~docrag.interfaces.embedding_provider.IEmbeddingProvider`
and adds what the ingestion pipeline needs on top of a single API call:

* inputs are split into batches no larger than the provider (or the
  configured batch size) accepts, and the results are reassembled in input
  order;
* each batch runs under a timeout and transient failures are retried with
  exponential backoff;
* the output is validated: exactly one vector per input, every vector with
  the provider's declared dimension.
"""

from __future__ import annotations

import structlog

from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.utils.errors import EmbeddingProviderError, TransientEmbeddingError
from docrag.utils.retry import call_with_retry

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingGenerator:
    """Embeds a list of texts in provider-sized batches."""

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int | None = None,
        timeout: float | None = 60.0,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
    ) -> None:
        provider_max = provider.get_max_batch_size()
        self._provider = provider
        self._batch_size = min(batch_size, provider_max) if batch_size else provider_max
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def embed_chunks(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding per entry of *texts*, in the same order.

        Raises
        ------
        EmbeddingProviderError
            When a batch fails terminally, retries are exhausted, or the
            provider returns the wrong number or shape of vectors.
        """
        if not texts:
            return []

        dimension = self._provider.get_dimension()
        vectors: list[list[float]] = []
        total_batches = (len(texts) + self._batch_size - 1) // self._batch_size

        for batch_number, offset in enumerate(range(0, len(texts), self._batch_size), start=1):
            batch = texts[offset : offset + self._batch_size]
            result = await call_with_retry(
                "embed_batch",
                lambda batch=batch: self._provider.embed(batch),
                timeout=self._timeout,
                retry_on=(TransientEmbeddingError,),
                timeout_error=lambda msg: TransientEmbeddingError(
                    message=msg, provider_name=self._provider.get_provider_name()
                ),
                max_attempts=self._max_attempts,
                backoff_base=self._backoff_base,
                backoff_max=self._backoff_max,
            )
            self._validate_batch(result, expected=len(batch), dimension=dimension)
            vectors.extend(result)
            logger.debug(
                "embedding_batch_completed",
                batch=batch_number,
                total_batches=total_batches,
                batch_size=len(batch),
            )

        return vectors

    def _validate_batch(self, result: list[list[float]], expected: int, dimension: int) -> None:
        provider_name = self._provider.get_provider_name()
        if len(result) != expected:
            raise EmbeddingProviderError(
                message=f"provider returned {len(result)} embeddings for {expected} inputs",
                provider_name=provider_name,
            )
        for position, vector in enumerate(result):
            if len(vector) != dimension:
                raise EmbeddingProviderError(
                    message=(
                        f"embedding {position} has dimension {len(vector)}, "
                        f"expected {dimension}"
                    ),
                    provider_name=provider_name,
                )
