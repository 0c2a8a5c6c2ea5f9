"""Text extractor implementations."""
