"""ipsource Configuration System.

Layered YAML configuration with Pydantic validation.

Config Layer Priority (highest to lowest):
1. Runtime overrides (in-memory)
2. Config file (YAML)
3. Environment variables (IPSOURCE_ prefix, "__" for nesting)
4. Defaults (defined in Pydantic models)

A command source can also be configured with the one-line directive
dialect used by the host server's config file:

    command <program> [args...]

Usage:
    from ipsource.core.config import create_settings

    settings = create_settings(Path("ipsource.yaml"))
    spec = settings.source.to_spec()
    policy = settings.ip_settings.to_policy()
"""

from __future__ import annotations

import ipaddress
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ipsource.core.exceptions import ConfigurationError
from ipsource.core.models import (
    AddressVersionPolicy,
    CommandSpec,
    VersionToggle,
    parse_duration,
)

DIRECTIVE_NAME = "command"
DIRECTIVE_SOURCE = "<directive>"


# =============================================================================
# Sub-configuration Models (nested sections)
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is json or console."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'console'")
        return v.lower()


class CommandConfig(BaseModel):
    """Command source configuration (the `command` / `args` / `dir` / `timeout` keys)."""

    command: str = ""
    args: List[str] = Field(default_factory=list)
    dir: Optional[str] = None
    timeout: Optional[Union[float, str]] = None

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[Union[float, str]]) -> Optional[Union[float, str]]:
        """Reject timeouts that are not numbers or duration strings."""
        parse_duration(v)
        return v

    def to_spec(self) -> CommandSpec:
        """Build the immutable CommandSpec used by the runner.

        Raises:
            ConfigurationError: If no command is configured.
        """
        if not self.command.strip():
            raise ConfigurationError(
                config_path=DIRECTIVE_SOURCE,
                key="command",
                expected_type="non-empty string",
                message="No command configured for the command IP source.",
            )
        return CommandSpec(
            executable=self.command,
            args=self.args,
            dir=self.dir,
            timeout=self.timeout,
        )


class IPSettingsConfig(BaseModel):
    """Address family and range settings.

    ipv4/ipv6 are left unset (None) unless explicitly configured; unset
    means enabled.
    """

    ipv4: Optional[bool] = None
    ipv6: Optional[bool] = None
    ip_ranges: List[str] = Field(default_factory=list)

    @field_validator("ip_ranges")
    @classmethod
    def validate_ranges(cls, v: List[str]) -> List[str]:
        """Validate every range is an IP network or single address."""
        for item in v:
            try:
                ipaddress.ip_network(item.strip(), strict=False)
            except ValueError as e:
                raise ValueError(f"Invalid IP range: {item}") from e
        return v

    def to_policy(self) -> AddressVersionPolicy:
        """Build the AddressVersionPolicy used by the filter."""
        return AddressVersionPolicy.from_ranges(
            self.ip_ranges,
            ipv4=VersionToggle.from_bool(self.ipv4),
            ipv6=VersionToggle.from_bool(self.ipv6),
        )


# =============================================================================
# Main Settings
# =============================================================================


class Settings(BaseSettings):
    """Main settings class.

    Loads configuration from:
    1. Keyword arguments (merged file + overrides)
    2. Environment variables (IPSOURCE_ prefix)
    3. Defaults defined in Pydantic models
    """

    model_config = SettingsConfigDict(
        env_prefix="IPSOURCE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    source: CommandConfig = Field(default_factory=CommandConfig)
    ip_settings: IPSettingsConfig = Field(default_factory=IPSettingsConfig)
    logging_config: LoggingConfig = Field(
        default_factory=LoggingConfig, alias="logging"
    )

    @property
    def logging(self) -> LoggingConfig:
        """Alias for logging_config to match YAML key and common usage."""
        return self.logging_config


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as dictionary.

    Raises:
        ConfigurationError: If file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Configuration file not found: {path}",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Invalid YAML in {path}: {e}",
        )

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            config_path=str(path),
            expected_type="mapping",
            message=f"Configuration in {path} must be a mapping.",
        )
    return content


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs override earlier ones.
    """
    result: Dict[str, Any] = {}

    for config in configs:
        for key, value in config.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = merge_configs(result[key], value)
            else:
                result[key] = value

    return result


def create_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Create a Settings instance from an optional YAML file and overrides.

    A `.env` file next to the config file is loaded first so its
    IPSOURCE_ variables take part in environment resolution.

    Args:
        config_path: Optional path to a YAML config file.
        overrides: Optional runtime overrides dictionary.

    Returns:
        Configured Settings instance.

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid.
    """
    file_config: Dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path).expanduser()
        env_path = config_path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
        file_config = load_yaml_file(config_path)

    merged = merge_configs(file_config, overrides or {})

    try:
        return Settings(**merged)
    except ValidationError as e:
        raise ConfigurationError(
            config_path=str(config_path or "<defaults>"),
            message=f"Configuration validation failed: {e}",
        ) from e


def parse_directive(text: str) -> CommandConfig:
    """Parse the `command <program> [args...]` directive dialect.

    Blank lines and `#` comments are ignored. If the directive appears
    more than once, the last occurrence wins.

    Args:
        text: Directive text.

    Returns:
        CommandConfig with command and args set.

    Raises:
        ConfigurationError: If the directive is unknown, has no program
            token, or its quoting is unbalanced.
    """
    result: Optional[CommandConfig] = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as e:
            raise ConfigurationError(
                config_path=DIRECTIVE_SOURCE,
                key=DIRECTIVE_NAME,
                message=f"line {lineno}: cannot parse directive: {e}",
            ) from e
        if not tokens:
            continue

        name, *rest = tokens
        if name != DIRECTIVE_NAME:
            raise ConfigurationError(
                config_path=DIRECTIVE_SOURCE,
                key=name,
                message=f"line {lineno}: unrecognized directive '{name}'",
            )
        if not rest:
            raise ConfigurationError(
                config_path=DIRECTIVE_SOURCE,
                key=DIRECTIVE_NAME,
                expected_type="program name",
                message=f"line {lineno}: wrong argument count or unexpected line ending after '{name}'",
            )
        result = CommandConfig(command=rest[0], args=rest[1:])

    if result is None:
        raise ConfigurationError(
            config_path=DIRECTIVE_SOURCE,
            key=DIRECTIVE_NAME,
            message=f"no '{DIRECTIVE_NAME}' directive found",
        )
    return result
