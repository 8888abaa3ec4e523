"""Engine configuration and settings.

Configuration is stored in ~/.config/polypkg/config.toml. A missing file
is not an error: every setting has a default.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from polypkg.core.paths import ensure_config_dir, get_config_path
from polypkg.models.package import PackageSource

logger = logging.getLogger(__name__)

# Bound of the live-output channel. Large enough that a chatty installer
# never fills its pipe while the consumer is rendering.
DEFAULT_STREAM_BUFFER = 256


class EngineConfig(BaseModel):
    """Settings for the package engine.

    Attributes:
        enabled_sources: Sources to use. None enables every available source.
        stream_buffer: Capacity of the bounded live-output channel.
        command_timeout: Seconds before a command is killed. None waits forever.
        elevation_program: Launcher used to run privileged commands.
    """

    model_config = ConfigDict(extra="forbid")

    enabled_sources: Annotated[
        list[PackageSource] | None,
        Field(description="Enabled package sources (None = all available)"),
    ] = None
    stream_buffer: Annotated[
        int,
        Field(ge=1, le=10000, description="Live output channel capacity"),
    ] = DEFAULT_STREAM_BUFFER
    command_timeout: Annotated[
        float | None,
        Field(gt=0, description="Command timeout in seconds (None = unbounded)"),
    ] = None
    elevation_program: Annotated[
        str,
        Field(min_length=1, description="Privilege elevation launcher"),
    ] = "pkexec"

    @field_validator("enabled_sources", mode="before")
    @classmethod
    def parse_sources(cls, v: object) -> object:
        """Accept source names in any letter case."""
        if isinstance(v, list):
            return [PackageSource.parse(s) if isinstance(s, str) else s for s in v]
        return v

    def is_enabled(self, source: PackageSource) -> bool:
        """Check whether a source is enabled by this configuration."""
        return self.enabled_sources is None or source in self.enabled_sources


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> EngineConfig:
    """Load engine configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated EngineConfig. Defaults when the file does not exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read or does not match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return EngineConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return EngineConfig.model_validate(data)
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid config: {e}") from e


def save_config(config: EngineConfig, path: Path | None = None) -> Path:
    """Save engine configuration to a TOML file.

    Args:
        config: Configuration to save.
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Path where the configuration was written.

    Raises:
        ConfigError: If the file cannot be written.
    """
    if path is None:
        ensure_config_dir()
        config_path = get_config_path()
    else:
        config_path = path
        config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_none=True)

    try:
        with open(config_path, "wb") as f:
            tomli_w.dump(data, f)
    except OSError as e:
        raise ConfigError(f"Failed to write config: {e}") from e

    logger.debug("Saved config to %s", config_path)
    return config_path
