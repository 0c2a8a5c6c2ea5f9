"""Configuration: environment-backed settings and the YAML loader."""
