"""YAML configuration loader with environment variable overrides.

Configuration is resolved in layers (later layers win):

  1. Field defaults on :class:`Settings`
  2. An optional YAML file (e.g. ``config/docrag.yaml``)
  3. ``.env`` file and environment variables

The YAML file uses the same flat keys as :class:`Settings`::

    chunk_size: 800
    chunk_overlap: 120
    chroma_url: http://chroma:8000
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from docrag.config.settings import Settings
from docrag.utils.errors import ConfigurationError


def load_settings(path: str | None = None) -> Settings:
    """Build :class:`Settings` from an optional YAML file plus the environment.

    Args:
        path: Path to a YAML file.  ``None`` or a missing file means
              environment-only settings.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: If the file is not valid YAML, is not a mapping,
            or any layer supplies a value that fails validation.
    """
    yaml_config: dict = {}
    if path:
        config_path = Path(path)
        if config_path.exists():
            try:
                with open(config_path) as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Config file {path} is not valid YAML: {exc}") from exc
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Config file {path} must contain a mapping")

    try:
        # Fields present in model_fields_set were supplied by env or .env;
        # those override the YAML layer.
        env_settings = Settings()
        env_overrides = env_settings.model_dump(include=env_settings.model_fields_set)
        return Settings(**{**yaml_config, **env_overrides})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
