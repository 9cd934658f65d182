"""Live directory of peer nodes.

The directory advertises this node through a DiscoveryTransport and keeps a
table of the other nodes it has seen. A peer is added when its
advertisement appears and removed when it is withdrawn; there are no
independent liveness timeouts. Statically configured peers are always
present.
"""

import threading
from collections.abc import Callable, Iterable
from typing import final

import anyio
import pendulum
from anyio.abc import TaskStatus
from structlog.typing import FilteringBoundLogger

from sink.config import StaticPeerConfig
from sink.discovery._models import (
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
from sink.discovery._protocol import DiscoveryTransport
from sink.exceptions import DiscoveryError
from sink.utils import Callback, Subscribers, get_logger


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(pendulum.now("UTC").timestamp() * 1000)


@final
class PeerDirectory:
    """Advertises this node and tracks which other nodes are up.

    The peer table is guarded by a lock that is never held across an await;
    subscriber callbacks run after the table has been updated.
    """

    def __init__(
        self,
        transport: DiscoveryTransport | None,
        *,
        name: str,
        port: int,
        host: str = "127.0.0.1",
        static_peers: Iterable[StaticPeerConfig] = (),
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._transport = transport
        self._name = name
        self._port = port
        self._host = host
        self._static_peers = tuple(static_peers)
        self._logger = logger or get_logger("directory")
        self._clock = clock
        self._lock = threading.Lock()
        self._peers: dict[str, Peer] = {}
        self._instances: dict[str, str] = {}
        self._started = False
        self._browsing = False
        self._subscribers: Subscribers[PeerEvent] = Subscribers("peer", self._logger)

    @property
    def self_id(self) -> str:
        """Return this node's id as other nodes see it."""
        return peer_id(self._name, self._port)

    @property
    def started(self) -> bool:
        """Return True between start() and stop()."""
        return self._started

    @property
    def browsing(self) -> bool:
        """Return True while the transport is advertising and browsing."""
        return self._browsing

    def self_peer(self) -> Peer:
        """Describe this node as a Peer."""
        return Peer(
            id=self.self_id,
            name=self._name,
            host=self._host,
            port=self._port,
            addresses=(self._host,),
            last_seen=self._clock(),
            source=PeerSource.STATIC,
        )

    def advertisement(self) -> Advertisement:
        """Return what this node publishes."""
        return Advertisement(display_name=self._name, port=self._port, self_id=self.self_id)

    def peers(self) -> tuple[Peer, ...]:
        """Return the known peers in the order they were first seen."""
        with self._lock:
            return tuple(self._peers.values())

    def get(self, peer_id: str) -> Peer | None:
        """Return a peer by id, or None."""
        with self._lock:
            return self._peers.get(peer_id)

    def subscribe(self, callback: Callback[PeerEvent]) -> Callable[[], None]:
        """Register a peer up/down callback. Returns the unsubscribe function."""
        return self._subscribers.subscribe(callback)

    async def start(self) -> None:
        """Insert static peers and start advertising and browsing.

        A transport that cannot start is logged and the directory carries on
        with static peers only.
        """
        if self._started:
            return
        self._started = True

        for static in self._static_peers:
            await self._add_static(static)

        if self._transport is not None:
            try:
                await self._transport.start(self.advertisement())
            except DiscoveryError as e:
                self._logger.warning("discovery_unavailable", error=str(e))
            else:
                self._browsing = True
        self._logger.info("directory_started", self_id=self.self_id, browsing=self._browsing)

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        """Start, then apply discovery events until cancelled."""
        await self.start()
        task_status.started()
        try:
            if self._transport is not None and self._browsing:
                async for event in self._transport.events():
                    await self.handle(event)
            await anyio.sleep_forever()
        finally:
            with anyio.CancelScope(shield=True):
                await self.stop()

    async def stop(self) -> None:
        """Withdraw the advertisement, stop browsing and forget all peers."""
        if not self._started:
            return
        self._started = False
        if self._transport is not None and self._browsing:
            self._browsing = False
            await self._transport.stop()
        with self._lock:
            self._peers.clear()
            self._instances.clear()
        self._logger.info("directory_stopped", self_id=self.self_id)

    async def handle(self, event: DiscoveryEvent) -> None:
        """Apply one discovery event to the peer table."""
        if event.kind is DiscoveryEventKind.UP and event.record is not None:
            await self._on_up(event.record)
        elif event.kind is DiscoveryEventKind.DOWN:
            await self._on_down(event.instance)

    async def _add_static(self, static: StaticPeerConfig) -> None:
        static_id = peer_id(static.name, static.port)
        if static_id == self.self_id:
            return
        peer = Peer(
            id=static_id,
            name=static.name,
            host=static.host,
            port=static.port,
            addresses=(static.host,),
            last_seen=self._clock(),
            source=PeerSource.STATIC,
        )
        with self._lock:
            is_new = static_id not in self._peers
            self._peers[static_id] = peer
        if is_new:
            self._logger.info("peer_up", peer_id=static_id, source=PeerSource.STATIC.value)
            await self._subscribers.publish(PeerEvent(kind=PeerEventKind.UP, peer=peer))

    async def _on_up(self, record: ServiceRecord) -> None:
        record_id = record.peer_id
        if record_id == self.self_id:
            return

        seen_at = self._clock()
        with self._lock:
            existing = self._peers.get(record_id)
            if existing is not None and existing.source is PeerSource.STATIC:
                peer = existing.model_copy(update={"last_seen": seen_at})
            else:
                peer = Peer(
                    id=record_id,
                    name=record.display_name,
                    host=record.host,
                    port=record.port,
                    addresses=record.addresses,
                    last_seen=seen_at,
                    source=PeerSource.DISCOVERED,
                )
            self._peers[record_id] = peer
            self._instances[record.instance] = record_id

        if existing is None:
            self._logger.info("peer_up", peer_id=record_id, host=peer.host, port=peer.port)
            await self._subscribers.publish(PeerEvent(kind=PeerEventKind.UP, peer=peer))
        else:
            self._logger.debug("peer_seen", peer_id=record_id)

    async def _on_down(self, instance: str) -> None:
        with self._lock:
            record_id = self._instances.pop(instance, None)
            if record_id is None:
                return
            if record_id in self._instances.values():
                return
            peer = self._peers.get(record_id)
            if peer is None or peer.source is PeerSource.STATIC:
                return
            del self._peers[record_id]

        self._logger.info("peer_down", peer_id=record_id)
        await self._subscribers.publish(PeerEvent(kind=PeerEventKind.DOWN, peer=peer))
