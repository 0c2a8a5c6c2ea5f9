"""Cross-cutting utilities: errors, logging, retries, text normalization."""
