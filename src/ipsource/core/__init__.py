"""Core module for ipsource.

Exports the core components: exceptions, data models, configuration
and the source registry.
"""

from ipsource.core.exceptions import (
    IPSourceError,
    ConfigurationError,
    CommandError,
    SpawnError,
    ExecutionError,
    CommandTimeoutError,
    ParseError,
    SourceNotFoundError,
)
from ipsource.core.models import (
    DEFAULT_TIMEOUT_SECONDS,
    Address,
    AddressVersionPolicy,
    CommandSpec,
    ExecutionOutcome,
    ExecutionResult,
    VersionToggle,
    parse_duration,
)
from ipsource.core.config import (
    Settings,
    CommandConfig,
    IPSettingsConfig,
    LoggingConfig,
    create_settings,
    load_yaml_file,
    merge_configs,
    parse_directive,
)
from ipsource.core.registry import SourceRegistry

__all__ = [
    # Exceptions
    "IPSourceError",
    "ConfigurationError",
    "CommandError",
    "SpawnError",
    "ExecutionError",
    "CommandTimeoutError",
    "ParseError",
    "SourceNotFoundError",
    # Data Models
    "DEFAULT_TIMEOUT_SECONDS",
    "Address",
    "AddressVersionPolicy",
    "CommandSpec",
    "ExecutionOutcome",
    "ExecutionResult",
    "VersionToggle",
    "parse_duration",
    # Configuration
    "Settings",
    "CommandConfig",
    "IPSettingsConfig",
    "LoggingConfig",
    "create_settings",
    "load_yaml_file",
    "merge_configs",
    "parse_directive",
    # Registry
    "SourceRegistry",
]
