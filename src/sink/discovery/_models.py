"""Data models for peer discovery."""

from dataclasses import dataclass
from enum import StrEnum

from sink.repository._models import WireModel

PROTOCOL_VERSION = "1"


class PeerSource(StrEnum):
    """How a peer became known."""

    DISCOVERED = "discovered"
    STATIC = "static"


class Peer(WireModel):
    """Another node on the network.

    Attributes:
        id: Unique key in the directory, ``{name}-{port}`` by default.
        name: Display name the peer advertises.
        host: Address used to reach the peer's HTTP server.
        port: HTTP port.
        addresses: Every address the peer advertised.
        last_seen: Epoch milliseconds of the latest sighting.
        source: Whether the peer was discovered or configured.
    """

    id: str
    name: str
    host: str
    port: int
    addresses: tuple[str, ...] = ()
    last_seen: int = 0
    source: PeerSource = PeerSource.DISCOVERED

    @property
    def address(self) -> str:
        """Return ``host:port``, the display deduplication key."""
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        """Return the root URL of the peer's HTTP server."""
        return f"http://{self.address}"


def peer_id(name: str, port: int) -> str:
    """Compute the default peer id from a display name and port."""
    return f"{name}-{port}"


@dataclass(frozen=True, slots=True)
class Advertisement:
    """What this node publishes about itself.

    Attributes:
        display_name: Human-readable machine name.
        port: HTTP port.
        self_id: Directory key other nodes should use for this node.
        protocol_version: Wire protocol version.
    """

    display_name: str
    port: int
    self_id: str
    protocol_version: str = PROTOCOL_VERSION


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    """A resolved advertisement seen on the network.

    Attributes:
        instance: Transport-level service instance name, unique per advertiser.
        display_name: Advertised machine name.
        host: Preferred address to reach the advertiser.
        port: Advertised HTTP port.
        addresses: All advertised addresses.
        self_id: Explicit id from the advertisement, if any.
        protocol_version: Advertised protocol version, if any.
    """

    instance: str
    display_name: str
    host: str
    port: int
    addresses: tuple[str, ...] = ()
    self_id: str | None = None
    protocol_version: str | None = None

    @property
    def peer_id(self) -> str:
        """Return the directory key for this advertisement."""
        return self.self_id or peer_id(self.display_name, self.port)


class DiscoveryEventKind(StrEnum):
    """Transport-level discovery event kinds."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class DiscoveryEvent:
    """An advertisement appearing or disappearing.

    ``record`` is set for UP events. DOWN events only carry the instance name.
    """

    kind: DiscoveryEventKind
    instance: str
    record: ServiceRecord | None = None


class PeerEventKind(StrEnum):
    """Directory-level peer event kinds."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class PeerEvent:
    """A peer joining or leaving the directory."""

    kind: PeerEventKind
    peer: Peer
