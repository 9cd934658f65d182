"""Configuration models."""

from ._common import ConfigSource, ConfigSourceName, LogFormat, LogLevel
from ._config import SinkConfig
from ._sections import (
    DEFAULT_PORT,
    SERVICE_TYPE,
    ChannelConfig,
    DiscoveryConfig,
    LoggingConfig,
    MachineConfig,
    ScanConfig,
    StaticPeerConfig,
    SyncConfig,
    WatchConfig,
)

__all__ = [
    "DEFAULT_PORT",
    "SERVICE_TYPE",
    "ChannelConfig",
    "ConfigSource",
    "ConfigSourceName",
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
]
