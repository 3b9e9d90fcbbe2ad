"""
Engine Configuration

Loads engine settings from a YAML file (example: config/engine.yaml):

    auto_sentinel: auto        # forced id meaning "classify automatically"
    max_input_chars: 200000    # longer inputs are truncated
    min_text_length: 10        # shorter PDF texts are treated as scanned
    log_level: INFO
    ranking: [...]             # ids scored in automatic mode (order matters)
    dispatch: [...]            # ids accepted in forced mode (omit for all)

Every key is optional; missing keys keep their defaults.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml
from loguru import logger

from .exceptions import ConfigError

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    """Settings for the extraction engine."""

    auto_sentinel: str = "auto"
    max_input_chars: int = 200000
    min_text_length: int = 10
    log_level: str = "INFO"

    # None means the built-in sets
    ranking: Optional[List[str]] = None
    dispatch: Optional[List[str]] = None

    source: Optional[Path] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: dict, source: Optional[Path] = None) -> 'EngineConfig':
        """Build a config from a parsed YAML mapping, validating values."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(source, "top level must be a mapping")

        known = {"auto_sentinel", "max_input_chars", "min_text_length", "log_level", "ranking", "dispatch"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(source, f"unknown keys: {', '.join(unknown)}")

        config = cls(source=source)

        if "auto_sentinel" in data:
            sentinel = data["auto_sentinel"]
            if not isinstance(sentinel, str) or not sentinel.strip():
                raise ConfigError(source, "auto_sentinel must be a non-empty string")
            config.auto_sentinel = sentinel.strip()

        for key in ("max_input_chars", "min_text_length"):
            if key in data:
                value = data[key]
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    raise ConfigError(source, f"{key} must be a non-negative integer")
                setattr(config, key, value)

        if "log_level" in data:
            level = str(data["log_level"]).upper()
            if level not in LOG_LEVELS:
                raise ConfigError(source, f"log_level must be one of {', '.join(LOG_LEVELS)}")
            config.log_level = level

        for key in ("ranking", "dispatch"):
            if data.get(key) is not None:
                ids = data[key]
                if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
                    raise ConfigError(source, f"{key} must be a list of format ids")
                setattr(config, key, list(ids))

        return config


def load_config(config_path: Union[str, Path, None] = None) -> EngineConfig:
    """
    Load engine configuration from YAML.

    Args:
        config_path: Path to the YAML file. None returns the defaults.

    Returns:
        EngineConfig

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    if config_path is None:
        logger.debug("No engine config given, using built-in defaults")
        return EngineConfig()

    config_path = Path(config_path)
    logger.debug(f"Loading engine configuration from: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(config_path, "file not found")
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(config_path, str(e)) from e

    return EngineConfig.from_dict(data, source=config_path)
