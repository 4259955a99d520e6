"""Configuration models and loader.

Configuration lives in an optional ``taxokey.yaml`` file:

    merge:
      description_min_length: 20
      placeholder_domains:
        - picsum.photos
        - placehold.co
    log_level: INFO

The loaded configuration is held in a module-level singleton. Merge functions
read ``get_config().merge`` when no explicit MergeConfig is passed, and fall
back to defaults when nothing has been loaded.

Public API:
    MergeConfig: Tunables of the reconciliation engine
    Config: Root configuration model
    load_config: Validate and install configuration from a dict or YAML file
    get_config: Return the active configuration
    find_config_file: Locate taxokey.yaml in a directory
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from taxokey.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_PLACEHOLDER_DOMAINS",
    "Config",
    "MergeConfig",
    "find_config_file",
    "get_config",
    "load_config",
]

CONFIG_FILENAME = "taxokey.yaml"

# Stock image services used by generators as "no real image yet" fillers
DEFAULT_PLACEHOLDER_DOMAINS: tuple[str, ...] = (
    "picsum.photos",
    "placehold.co",
    "placeholder.com",
    "via.placeholder.com",
    "dummyimage.com",
    "placekitten.com",
    "loremflickr.com",
    "fakeimg.pl",
)


class MergeConfig(BaseModel):
    """Tunables of the reconciliation engine.

    Attributes:
        description_min_length: A candidate description replaces the existing
            one only when it is longer than this many characters.
        placeholder_domains: URL fragments identifying placeholder images.
            Matched as case-insensitive substrings of the URL.

    Example:
        >>> config = MergeConfig(description_min_length=40)
        >>> config.description_min_length
        40

    """

    model_config = ConfigDict(frozen=True)

    description_min_length: int = Field(
        default=20,
        ge=0,
        description="Candidate description wins only above this length",
    )
    placeholder_domains: tuple[str, ...] = Field(
        default=DEFAULT_PLACEHOLDER_DOMAINS,
        description="URL fragments that mark an image as a placeholder",
    )

    @field_validator("placeholder_domains", mode="before")
    @classmethod
    def normalize_domains(cls, v: Any) -> tuple[str, ...]:
        """YAML parses an empty list key as None; blank entries are dropped."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(d).strip().lower() for d in v if str(d).strip())


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        merge: Reconciliation engine settings.
        log_level: Default log level used by the CLI.

    """

    model_config = ConfigDict(frozen=True)

    merge: MergeConfig = Field(default_factory=MergeConfig)
    log_level: str = Field(default="WARNING")

    @field_validator("merge", mode="before")
    @classmethod
    def coerce_none_to_defaults(cls, v: Any) -> Any:
        """An empty ``merge:`` section means defaults."""
        if v is None:
            return {}
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v!r}")
        return level


_config: Config | None = None


def _reset_config() -> None:
    """Drop the loaded configuration. Used by tests."""
    global _config
    _config = None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    # yaml.safe_load returns None for empty files
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping in {path}, got {type(data).__name__}")
    return data


def load_config(source: dict[str, Any] | Path | str) -> Config:
    """Validate configuration and install it as the active config.

    Args:
        source: Raw config mapping, or path to a YAML config file.

    Returns:
        The validated Config.

    Raises:
        ConfigError: If the file cannot be read or validation fails.

    """
    global _config

    data = source if isinstance(source, dict) else _read_yaml(Path(source))

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    _config = config
    logger.debug("Loaded configuration: %s", config)
    return config


def get_config() -> Config:
    """Return the active configuration, defaults if none was loaded."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def find_config_file(start: Path) -> Path | None:
    """Return ``start/taxokey.yaml`` if it exists, else None."""
    candidate = start / CONFIG_FILENAME
    if candidate.is_file():
        return candidate
    return None
