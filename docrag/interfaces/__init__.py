"""Abstract contracts for every external capability the pipeline uses.

Concrete adapters live in ``docrag/providers/`` and are wired together in
``docrag/main.py``.

    Interface              ->  Concrete implementation
    ----------------------------------------------------------
    ITextExtractor         ->  DocumentTextExtractor
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider
    IMetadataStore         ->  SQLiteMetadataStore
"""

from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.metadata_store import IMetadataStore
from docrag.interfaces.text_extractor import ITextExtractor
from docrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IMetadataStore",
    "ITextExtractor",
    "IVectorStoreProvider",
]
