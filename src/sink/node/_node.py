"""A Sink node: every component of one machine, wired together.

Two flows run inside the node's task group:

- A watched repository changes, its snapshot is collected again and pushed
  to every observer through the update hub.
- The peer directory tracks live peers, and the aggregation engine polls
  them into the per-peer cache. A peer coming up is fetched right away and
  a peer going down is evicted.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import final

import anyio
from anyio.abc import TaskGroup
from structlog.typing import FilteringBoundLogger

from sink.channel import UpdateHub
from sink.config import SinkConfig
from sink.discovery import (
    DiscoveryTransport,
    PeerDirectory,
    PeerEvent,
    PeerEventKind,
    ZeroconfTransport,
    local_ipv4_addresses,
)
from sink.repository import (
    RepositoryIdentity,
    RepositoryScanner,
    RepositorySnapshot,
    collect_snapshot,
    collect_snapshots,
)
from sink.sync import AggregatedView, AggregationEngine, SnapshotFetcher
from sink.utils import get_logger
from sink.watch import ChangeWatcher

_WILDCARD_HOSTS = frozenset({"", "0.0.0.0", "::"})  # noqa: S104


def advertised_host(bind_host: str) -> str:
    """Return the address peers should use to reach a server bound to ``bind_host``."""
    if bind_host in _WILDCARD_HOSTS:
        return local_ipv4_addresses()[0]
    return bind_host


def default_transport(config: SinkConfig, logger: FilteringBoundLogger) -> DiscoveryTransport | None:
    """Return the mDNS transport, or None when discovery is disabled."""
    if not config.discovery.enabled:
        return None
    return ZeroconfTransport(config.discovery.service_type, logger=logger)


@final
class SinkNode:
    """Owns the scanner, watcher, directory, engine and hub of one machine.

    Example:
        >>> node = SinkNode(config)
        >>> async with node.running():
        ...     view = await node.engine.view()
    """

    def __init__(
        self,
        config: SinkConfig,
        *,
        transport: DiscoveryTransport | None = None,
        fetcher: SnapshotFetcher | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self.config = config
        self._logger = logger or get_logger("node")
        self.scanner = RepositoryScanner(config.scan, logger=self._logger.bind(component="scanner"))
        self.watcher = ChangeWatcher(
            debounce=config.watch.debounce_ms / 1000,
            logger=self._logger.bind(component="watcher"),
        )
        self.directory = PeerDirectory(
            transport
            if transport is not None
            else default_transport(config, self._logger.bind(component="discovery")),
            name=config.machine.name,
            port=config.machine.port,
            host=advertised_host(config.machine.host),
            static_peers=config.peers,
            logger=self._logger.bind(component="directory"),
        )
        self.hub = UpdateHub(
            buffer_size=config.channel.buffer_size,
            logger=self._logger.bind(component="hub"),
        )
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or SnapshotFetcher(
            timeout=config.sync.fetch_timeout,
            logger=self._logger.bind(component="fetcher"),
        )
        self.engine = AggregationEngine(
            self.directory,
            self.fetcher,
            self.local_snapshots,
            poll_interval=config.sync.poll_interval,
            logger=self._logger.bind(component="aggregation"),
        )
        self._task_group: TaskGroup | None = None

    @property
    def machine_name(self) -> str:
        """Return this node's display name."""
        return self.config.machine.name

    @property
    def self_id(self) -> str:
        """Return this node's peer id."""
        return self.directory.self_id

    @property
    def is_running(self) -> bool:
        """Return True inside ``running()``."""
        return self._task_group is not None

    async def local_snapshots(self) -> list[RepositorySnapshot]:
        """Collect fresh snapshots of every local repository."""
        identities = await self.scanner.scan()
        return await collect_snapshots(identities, logger=self._logger.bind(component="status"))

    async def snapshot(self, repo_id: str) -> RepositorySnapshot:
        """Collect a fresh snapshot of one local repository.

        Raises:
            RepositoryNotFoundError: If the id is not part of the last scan.
        """
        await self.scanner.scan()
        return await collect_snapshot(self.scanner.get(repo_id))

    async def rescan(self) -> tuple[RepositoryIdentity, ...]:
        """Rescan the filesystem and watch exactly the repositories found."""
        identities = await self.scanner.scan(force=True)
        if self.is_running and self.config.watch.enabled:
            self.watcher.reconcile(identities)
        return identities

    async def view(self, scope: str | None = None) -> AggregatedView:
        """Return the merged cross-machine view for a scope."""
        return await self.engine.view(scope)

    async def _publish_change(self, identity: RepositoryIdentity) -> None:
        snapshot = await collect_snapshot(identity, logger=self._logger.bind(component="status"))
        self.hub.publish(snapshot)

    async def _on_peer_event(self, event: PeerEvent) -> None:
        if event.kind is PeerEventKind.DOWN:
            self.engine.forget(event.peer.id)
        elif self._task_group is not None:
            self._task_group.start_soon(self.engine.refresh_peer, event.peer)

    @asynccontextmanager
    async def running(self) -> AsyncIterator["SinkNode"]:
        """Run every component until the context exits."""
        unsubscribe = [
            self.watcher.subscribe(self._publish_change),
            self.directory.subscribe(self._on_peer_event),
        ]
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                identities = await self.scanner.scan(force=True)
                if self.config.watch.enabled:
                    await tg.start(self.watcher.run)
                    self.watcher.reconcile(identities)
                await tg.start(self.directory.run)
                await tg.start(self.engine.run)
                self._logger.info(
                    "node_started",
                    machine=self.machine_name,
                    self_id=self.self_id,
                    repositories=len(identities),
                )
                try:
                    yield self
                finally:
                    tg.cancel_scope.cancel()
        finally:
            self._task_group = None
            for release in unsubscribe:
                release()
            self.hub.close()
            if self._owns_fetcher:
                with anyio.CancelScope(shield=True):
                    await self.fetcher.aclose()
            self._logger.info("node_stopped", machine=self.machine_name)
