"""Top-level configuration model."""

from typing import Any, ClassVar

import tomli_w
from pydantic import BaseModel, ConfigDict, Field

from sink.config._models._sections import (
    ChannelConfig,
    DiscoveryConfig,
    LoggingConfig,
    MachineConfig,
    ScanConfig,
    StaticPeerConfig,
    SyncConfig,
    WatchConfig,
)


class SinkConfig(BaseModel):
    """Validated, merged configuration for one node.

    Instances are immutable. Use ``load_config()`` to build one from all
    sources, or ``SinkConfig.model_validate()`` for an explicit dictionary.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    machine: MachineConfig = Field(default_factory=MachineConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    peers: tuple[StaticPeerConfig, ...] = ()
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return the configuration as plain TOML-compatible data."""
        return self.model_dump(mode="json")

    def to_toml(self) -> str:
        """Render the effective configuration as TOML."""
        return tomli_w.dumps(self.to_dict())
