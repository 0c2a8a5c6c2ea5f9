"""Ingestion pipeline: chunking, embedding, vector writing and orchestration."""
