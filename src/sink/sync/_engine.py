"""Polling loop that keeps the peer cache current and builds views."""

from collections.abc import Awaitable, Callable, Sequence
from typing import final

import anyio
from anyio.abc import TaskStatus
from structlog.typing import FilteringBoundLogger

from sink.discovery._directory import PeerDirectory
from sink.discovery._models import Peer
from sink.repository._models import RepositorySnapshot
from sink.sync._aggregate import AggregatedView, build_view, dedupe_peers
from sink.sync._cache import PeerSnapshotCache
from sink.sync._fetcher import SnapshotFetcher
from sink.utils import get_logger

DEFAULT_POLL_INTERVAL = 30.0

type LocalSnapshots = Callable[[], Awaitable[Sequence[RepositorySnapshot]]]


@final
class AggregationEngine:
    """Polls live peers and merges their snapshots with the local ones.

    Each poll cycle fetches every distinct peer concurrently and bounds each
    fetch by the fetcher's timeout, so one hung peer never stalls the cycle
    beyond that.
    """

    def __init__(
        self,
        directory: PeerDirectory,
        fetcher: SnapshotFetcher,
        local_snapshots: LocalSnapshots,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cache: PeerSnapshotCache | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._directory = directory
        self._fetcher = fetcher
        self._local_snapshots = local_snapshots
        self._poll_interval = poll_interval
        self._cache = cache or PeerSnapshotCache()
        self._logger = logger or get_logger("aggregation")

    @property
    def cache(self) -> PeerSnapshotCache:
        """Return the per-peer snapshot cache."""
        return self._cache

    async def refresh(self) -> None:
        """Run one poll cycle over the current peers."""
        peers = dedupe_peers(self._directory.peers())
        self._cache.retain(peer.id for peer in peers)
        await self._cache.refresh(self._fetcher, peers)
        self._logger.debug("poll_completed", peers=len(peers), cached=len(self._cache))

    async def refresh_peer(self, peer: Peer) -> None:
        """Fetch a single peer right away, e.g. when it comes up."""
        await self._cache.refresh_peer(self._fetcher, peer)

    def forget(self, peer_id: str) -> None:
        """Drop a peer's cached snapshots."""
        self._cache.forget(peer_id)

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        """Poll every ``poll_interval`` seconds until cancelled."""
        task_status.started()
        while True:
            await self.refresh()
            await anyio.sleep(self._poll_interval)

    async def view(self, scope: str | None = None) -> AggregatedView:
        """Build the merged view for a scope from fresh local snapshots."""
        local = await self._local_snapshots()
        return build_view(
            self._directory.self_peer(),
            local,
            self._directory.peers(),
            self._cache.snapshot(),
            scope,
        )
