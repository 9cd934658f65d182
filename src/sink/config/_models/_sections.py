"""Configuration section models.

Every section is a frozen pydantic model; unknown keys are ignored so a
config file written for a newer version still loads.
"""

import socket
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sink.config._models._common import LogFormat, LogLevel

DEFAULT_PORT = 3847
SERVICE_TYPE = "_sink-git._tcp.local."


class _Section(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", coerce_numbers_to_str=True
    )


class MachineConfig(_Section):
    """Identity of this node.

    Attributes:
        name: Display name advertised to peers. Empty means the hostname.
        host: Interface the HTTP server binds to.
        port: HTTP port, also advertised through discovery.
    """

    name: str = Field(default="", validate_default=True)
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    @field_validator("name")
    @classmethod
    def _default_to_hostname(cls, value: str) -> str:
        return value.strip() or socket.gethostname()


class ScanConfig(_Section):
    """Where to look for repositories.

    Attributes:
        paths: Root directories scanned recursively.
        ignore: Directory names never descended into.
        manual_repos: Repositories added regardless of scan roots.
        max_depth: Maximum directory depth below a scan root.
        cache_seconds: How long a scan result is reused.
    """

    paths: tuple[Path, ...] = Field(default=(Path("~/Code"),), validate_default=True)
    ignore: tuple[str, ...] = ("node_modules", "vendor", "dist", "build", "target")
    manual_repos: tuple[Path, ...] = ()
    max_depth: int = Field(default=4, ge=0)
    cache_seconds: float = Field(default=30.0, ge=0)

    @field_validator("paths", "manual_repos")
    @classmethod
    def _expand_user(cls, value: tuple[Path, ...]) -> tuple[Path, ...]:
        return tuple(path.expanduser() for path in value)


class StaticPeerConfig(_Section):
    """A peer reachable without discovery."""

    name: str = Field(min_length=1)
    host: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)


class DiscoveryConfig(_Section):
    """Network discovery settings."""

    enabled: bool = True
    service_type: str = SERVICE_TYPE


class SyncConfig(_Section):
    """Peer polling settings, in seconds."""

    fetch_timeout: float = Field(default=5.0, gt=0)
    poll_interval: float = Field(default=30.0, gt=0)


class WatchConfig(_Section):
    """Change detection settings."""

    enabled: bool = True
    debounce_ms: int = Field(default=300, ge=0)


class ChannelConfig(_Section):
    """Live update channel settings.

    Attributes:
        ping_interval: Seconds between keep-alive pings from observers.
        reconnect_delay: Seconds an observer waits before reconnecting.
        buffer_size: Frames buffered per subscriber before it is dropped.
    """

    ping_interval: float = Field(default=30.0, gt=0)
    reconnect_delay: float = Field(default=3.0, ge=0)
    buffer_size: int = Field(default=64, ge=1)


class LoggingConfig(_Section):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format for file logging.
        file: Path to log file (empty logs to stderr).
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""
