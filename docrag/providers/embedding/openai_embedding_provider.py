"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports real OpenAI and OpenAI-compatible endpoints (TogetherAI, Fireworks,
a local proxy) through ``openai_base_url``.

One :meth:`embed` call is one upstream request; splitting large inputs and
retrying is done by the embedding generator, so this adapter only has to
classify failures:

* rate limiting, timeouts, connection errors and 5xx responses become
  :class:`TransientEmbeddingError` (retried);
* every other API error becomes :class:`EmbeddingProviderError` (terminal).
"""

from __future__ import annotations

import openai
import structlog

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.utils.errors import EmbeddingProviderError, TransientEmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}

_TRANSIENT_ERRORS: tuple[type[openai.APIError], ...] = (
    openai.RateLimitError,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  A pre-built
    ``client`` may be injected (tests, shared connection pools); otherwise
    one is constructed from *settings*.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = settings.embedding_dimension or _MODEL_DIMENSIONS.get(self._model, 1536)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

        if client is None:
            # Retries are handled one layer up; keep the SDK from stacking its own.
            client_kwargs: dict = {"api_key": self._api_key or None, "max_retries": 0}
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)
        self._client = client

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed one batch of at most 2048 texts with a single API call."""
        if not texts:
            return []
        if len(texts) > _OPENAI_BATCH_LIMIT:
            raise EmbeddingProviderError(
                message=f"batch of {len(texts)} exceeds the {_OPENAI_BATCH_LIMIT} input limit",
                provider_name=self.get_provider_name(),
            )

        try:
            response = await self._client.embeddings.create(input=texts, model=self._model)
        except _TRANSIENT_ERRORS as exc:
            raise TransientEmbeddingError(
                message=f"{self._provider_label} transient failure: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingProviderError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        # The API returns items with an explicit index; do not trust list order.
        items = sorted(response.data, key=lambda item: item.index)
        logger.info(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [list(item.embedding) for item in items]

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_max_batch_size(self) -> int:
        return _OPENAI_BATCH_LIMIT

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
