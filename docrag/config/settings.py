"""Application settings loaded from environment variables via pydantic-settings.

Sources, highest priority first:

1. environment variables (``CHUNK_SIZE=1500``)
2. a ``.env`` file in the working directory
3. an optional YAML file, when loaded through
   :func:`docrag.config.loader.load_settings`
4. the defaults below

Field ``openai_api_key`` maps to ``OPENAI_API_KEY``; pydantic-settings
matches case-insensitively.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docrag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embeddings ===
    # Empty key = "not configured"; the CLI refuses to ingest without one.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, a local proxy, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int | None = None  # Override for models the provider does not know

    # === Stores ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "docrag_documents"
    metadata_db_path: str = "data/documents.db"

    # === Chunking ===
    chunk_size: int = Field(default=2000, gt=0)
    chunk_overlap: int = Field(default=400, ge=0)

    # === Batching ===
    embedding_batch_size: int = Field(default=100, gt=0)
    vector_upsert_batch_size: int = Field(default=100, gt=0)

    # === Retries and timeouts (seconds) ===
    max_retry_attempts: int = Field(default=3, ge=1)
    retry_backoff_base: float = Field(default=0.5, ge=0)
    retry_backoff_max: float = Field(default=8.0, ge=0)
    extraction_timeout: float = Field(default=120.0, gt=0)
    embedding_timeout: float = Field(default=60.0, gt=0)
    vector_store_timeout: float = Field(default=30.0, gt=0)

    # === Intake ===
    max_file_size: int = Field(default=100 * 1024 * 1024, gt=0)  # 100 MB

    # === Failure policy ===
    # Remove vectors already written when a later upsert batch fails.
    compensate_partial_writes: bool = False

    # === Application ===
    app_env: str = "development"
    log_level: str = "INFO"
    log_json: bool = False
