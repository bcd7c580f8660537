"""
Configuration loader — reads graalpack.yml into a BuildpackConfig.

The file is optional. When the application directory has none, the
stock defaults apply. An explicit path that is missing or invalid is
an error.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from graalpack.core.models.config import BuildpackConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "graalpack.yml"


class ConfigError(Exception):
    """Raised when buildpack configuration is invalid or unreadable."""


def find_config_file(app_dir: Path | None = None) -> Path | None:
    """Return graalpack.yml in the application directory, if present."""
    candidate = (app_dir or Path.cwd()).resolve() / CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_config(path: Path | None = None, app_dir: Path | None = None) -> BuildpackConfig:
    """Load and validate buildpack configuration.

    Args:
        path: Explicit path to a config file. Must exist if given.
        app_dir: Directory searched for graalpack.yml when no path is given.

    Returns:
        Validated BuildpackConfig (defaults when no file is found).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file(app_dir)
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return BuildpackConfig()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading buildpack config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return BuildpackConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "graalpack" key or be flat
    data = data.get("graalpack", data)

    try:
        config = BuildpackConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid buildpack configuration: {e}") from e

    logger.info(
        "Loaded config: GraalVM %s (java%s, %s)",
        config.distribution.version,
        config.distribution.java_version,
        config.distribution.platform,
    )
    return config
