"""Per-peer snapshot cache."""

import threading
from collections.abc import Iterable
from typing import final

import anyio

from sink.discovery._models import Peer
from sink.repository._models import RepositorySnapshot
from sink.sync._fetcher import SnapshotFetcher


@final
class PeerSnapshotCache:
    """The latest known snapshot list of every reachable peer.

    Entries are replaced whole: a successful fetch stores the new list, a
    failed one removes the peer's entry. The lock is only held for dictionary
    access, never across a fetch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[RepositorySnapshot, ...]] = {}

    def __contains__(self, peer_id: object) -> bool:
        with self._lock:
            return peer_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, peer_id: str) -> tuple[RepositorySnapshot, ...] | None:
        """Return a peer's snapshots, or None if it is not cached."""
        with self._lock:
            return self._entries.get(peer_id)

    def snapshot(self) -> dict[str, tuple[RepositorySnapshot, ...]]:
        """Return a copy of every entry."""
        with self._lock:
            return dict(self._entries)

    def store(self, peer_id: str, snapshots: Iterable[RepositorySnapshot] | None) -> None:
        """Replace a peer's entry, or remove it when ``snapshots`` is None."""
        with self._lock:
            if snapshots is None:
                self._entries.pop(peer_id, None)
            else:
                self._entries[peer_id] = tuple(snapshots)

    def forget(self, peer_id: str) -> None:
        """Remove a peer's entry."""
        self.store(peer_id, None)

    def retain(self, peer_ids: Iterable[str]) -> None:
        """Drop entries of peers not in ``peer_ids``."""
        keep = set(peer_ids)
        with self._lock:
            for peer_id in self._entries.keys() - keep:
                del self._entries[peer_id]

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    async def refresh_peer(self, fetcher: SnapshotFetcher, peer: Peer) -> None:
        """Fetch one peer and store the outcome."""
        self.store(peer.id, await fetcher.fetch(peer))

    async def refresh(self, fetcher: SnapshotFetcher, peers: Iterable[Peer]) -> None:
        """Fetch every peer concurrently.

        Each completion updates its own entry as soon as it finishes, so a
        slow peer never delays the others.
        """
        async with anyio.create_task_group() as tg:
            for peer in peers:
                tg.start_soon(self.refresh_peer, fetcher, peer)
