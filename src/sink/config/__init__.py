"""Sink configuration.

Configuration is read from TOML files and the environment, merged in
precedence order and validated into an immutable ``SinkConfig``.

Example:
    >>> from sink.config import load_config
    >>> config = load_config()
    >>> config.machine.port
    3847
"""

from sink.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

from ._defaults import DEFAULT_CONFIG
from ._discovery import discover_sources, get_project_config_path, get_user_config_path
from ._load import load_config, safe_load_config, validate_config
from ._loader import deep_merge, parse_env_vars, read_toml_file, set_nested_key
from ._models import (
    DEFAULT_PORT,
    SERVICE_TYPE,
    ChannelConfig,
    ConfigSource,
    ConfigSourceName,
    DiscoveryConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MachineConfig,
    ScanConfig,
    SinkConfig,
    StaticPeerConfig,
    SyncConfig,
    WatchConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_PORT",
    "SERVICE_TYPE",
    "ChannelConfig",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "DiscoveryConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MachineConfig",
    "ScanConfig",
    "SinkConfig",
    "StaticPeerConfig",
    "SyncConfig",
    "WatchConfig",
    "deep_merge",
    "discover_sources",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "parse_env_vars",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
    "validate_config",
]
