from collections.abc import Callable
from pathlib import Path

import pytest

from sink.discovery import Peer, PeerSource
from sink.repository import LatestCommit, RepositorySnapshot, RepositoryStatus


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.unit)


SnapshotFactory = Callable[..., RepositorySnapshot]


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """Return a factory for snapshots with a given name and commit time."""

    def _make(
        name: str = "app",
        *,
        path: str | None = None,
        timestamp: int | None = 1_700_000_000_000,
        status: RepositoryStatus | None = None,
        error: str | None = None,
    ) -> RepositorySnapshot:
        repo_path = path or f"/home/me/Code/{name}"
        commit = None
        if timestamp is not None:
            commit = LatestCommit(
                hash="a" * 40,
                short_hash="aaaaaaa",
                message=f"Work on {name}",
                author="Test User",
                date="2023-11-14T22:13:20Z",
                timestamp=timestamp,
            )
        if status is None and error is None:
            status = RepositoryStatus(branch="main")
        snapshot = RepositorySnapshot.from_path(repo_path)
        return snapshot.model_copy(
            update={"status": status, "latest_commit": commit, "error": error}
        )

    return _make


@pytest.fixture
def make_peer() -> Callable[..., Peer]:
    def _make(
        name: str,
        *,
        host: str = "10.0.0.2",
        port: int = 3847,
        source: PeerSource = PeerSource.DISCOVERED,
    ) -> Peer:
        return Peer(id=f"{name}-{port}", name=name, host=host, port=port, source=source)

    return _make
