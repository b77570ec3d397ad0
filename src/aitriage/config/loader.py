"""Loading and saving aitriage.yaml.

A missing or empty file means defaults everywhere, so the engine runs with
zero configuration. The path can be overridden with ``AITRIAGE_CONFIG``.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from aitriage.config.schema import TriageConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AITRIAGE_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".aitriage" / "aitriage.yaml"


class ConfigError(Exception):
    """Configuration loading or validation error."""


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path, then ``$AITRIAGE_CONFIG``, then the default."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _read_yaml(path: Path) -> dict[str, Any] | None:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: str | Path | None = None) -> TriageConfig:
    """Load and validate aitriage configuration.

    Args:
        path: Config file; see ``resolve_config_path`` for the fallbacks

    Returns:
        Validated configuration (all defaults when the file is missing or empty)

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated
    """
    path = resolve_config_path(path)
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return TriageConfig()

    data = _read_yaml(path)
    if not data:
        return TriageConfig()

    try:
        config = TriageConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}: {e}") from e
    logger.debug("Loaded config from %s", path)
    return config


def save_config(config: TriageConfig, path: str | Path | None = None) -> Path:
    """Write configuration as YAML, creating parent directories.

    Returns:
        The path written
    """
    path = resolve_config_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
    return path
