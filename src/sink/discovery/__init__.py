"""Peer discovery: advertising this node and tracking the others."""

from ._directory import PeerDirectory, now_ms
from ._fake import FakeDiscoveryNetwork, FakeDiscoveryTransport
from ._models import (
    PROTOCOL_VERSION,
    Advertisement,
    DiscoveryEvent,
    DiscoveryEventKind,
    Peer,
    PeerEvent,
    PeerEventKind,
    PeerSource,
    ServiceRecord,
    peer_id,
)
from ._network import local_ipv4_addresses
from ._protocol import DiscoveryTransport
from ._zeroconf import ZeroconfTransport, instance_name, record_from_info

__all__ = [
    "PROTOCOL_VERSION",
    "Advertisement",
    "DiscoveryEvent",
    "DiscoveryEventKind",
    "DiscoveryTransport",
    "FakeDiscoveryNetwork",
    "FakeDiscoveryTransport",
    "Peer",
    "PeerDirectory",
    "PeerEvent",
    "PeerEventKind",
    "PeerSource",
    "ServiceRecord",
    "ZeroconfTransport",
    "instance_name",
    "local_ipv4_addresses",
    "now_ms",
    "peer_id",
    "record_from_info",
]
