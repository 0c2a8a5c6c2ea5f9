"""Vector store provider implementations.

ChromaDB is the sole implementation.  To use another index, implement
IVectorStoreProvider and pass it to ``open_pipeline``.
"""
