"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. field defaults in :class:`~docrag.config.settings.Settings`
  2. ``config.yaml``  -- flat ``key: value`` pairs using the field names
  3. ``.env`` file    -- local developer overrides (not committed)
  4. environment      -- set at deploy time

Unknown YAML keys are rejected so a typo does not silently fall back to a
default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from docrag.config.settings import Settings
from docrag.utils.errors import ConfigurationError


class _YamlLayeredSettings(Settings):
    """Settings whose constructor kwargs rank *below* the environment."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return data


def load_settings(path: str | Path | None = "config/config.yaml") -> Settings:
    """Build :class:`Settings` from an optional YAML file plus the environment.

    Args:
        path: YAML file to layer under the environment.  A missing file, or
            ``None``, means environment and defaults only.

    Returns:
        Validated settings.

    Raises:
        ConfigurationError: On malformed YAML, unknown keys, or values that
            fail validation.
    """
    yaml_config: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        yaml_config = _read_yaml(Path(path))

    unknown = sorted(set(yaml_config) - set(Settings.model_fields))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")

    try:
        return _YamlLayeredSettings(**yaml_config)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
