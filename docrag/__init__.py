"""docrag: document ingestion, chunking, embedding and dual-store consistency.

Turns uploaded documents into retrievable vector records while keeping each
document's metadata record in step with the vector index.  Start with
:func:`docrag.main.open_pipeline`.
"""

__version__ = "0.1.0"
