"""Application services: ingestion and deletion coordinators."""
