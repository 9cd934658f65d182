"""Unit tests for the aggregation engine's polling and views."""

from collections.abc import Callable, Sequence
from unittest.mock import MagicMock

import anyio
import httpx
import orjson
import pytest

from sink.config import StaticPeerConfig
from sink.discovery import Peer, PeerDirectory
from sink.repository import RepositorySnapshot
from sink.sync import DETAILED_REPOS_PATH, AggregationEngine, SnapshotFetcher

pytestmark = pytest.mark.anyio


class StubFetcher:
    """Answers fetches from a dict keyed by peer name; missing names are unreachable."""

    def __init__(self, responses: dict[str, list[RepositorySnapshot]]) -> None:
        self.responses = responses
        self.fetched: list[str] = []

    async def fetch(self, peer: Peer) -> list[RepositorySnapshot] | None:
        self.fetched.append(peer.name)
        return self.responses.get(peer.name)


def make_directory(*peers: str) -> PeerDirectory:
    return PeerDirectory(
        None,
        name="studio",
        port=3847,
        static_peers=tuple(
            StaticPeerConfig(name=name, host=f"10.0.0.{index + 2}", port=3847)
            for index, name in enumerate(peers)
        ),
        logger=MagicMock(),
    )


def make_engine(
    directory: PeerDirectory,
    fetcher: StubFetcher | SnapshotFetcher,
    local: Sequence[RepositorySnapshot] = (),
    *,
    poll_interval: float = 30.0,
) -> AggregationEngine:
    async def local_snapshots() -> Sequence[RepositorySnapshot]:
        return local

    return AggregationEngine(
        directory,
        fetcher,  # type: ignore[arg-type]
        local_snapshots,
        poll_interval=poll_interval,
        logger=MagicMock(),
    )


async def test_refresh_caches_reachable_peers(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop", "nas")
    await directory.start()
    fetcher = StubFetcher({"laptop": [make_snapshot("api")]})
    engine = make_engine(directory, fetcher)

    await engine.refresh()

    assert sorted(fetcher.fetched) == ["laptop", "nas"]
    assert "laptop-3847" in engine.cache
    assert "nas-3847" not in engine.cache


async def test_refresh_drops_peers_that_left(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop")
    await directory.start()
    engine = make_engine(directory, StubFetcher({"laptop": [make_snapshot()]}))
    engine.cache.store("gone-3847", [make_snapshot()])

    await engine.refresh()

    assert "gone-3847" not in engine.cache


async def test_view_merges_local_and_cached(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop")
    await directory.start()
    engine = make_engine(
        directory,
        StubFetcher({"laptop": [make_snapshot("app", timestamp=2)]}),
        [make_snapshot("app", timestamp=1)],
    )
    await engine.refresh()

    everything = await engine.view()
    local_only = await engine.view("studio-3847")

    assert [entry.machine for entry in everything.entries] == ["laptop", "studio"]
    assert [entry.machine for entry in local_only.entries] == ["studio"]
    assert local_only.entries[0].newer_on == ("laptop",)


async def test_forget_evicts_peer(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop")
    await directory.start()
    engine = make_engine(directory, StubFetcher({"laptop": [make_snapshot()]}))
    await engine.refresh()

    engine.forget("laptop-3847")

    view = await engine.view()
    assert view.entries == ()


async def test_run_polls_periodically(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop")
    await directory.start()
    fetcher = StubFetcher({"laptop": [make_snapshot()]})
    engine = make_engine(directory, fetcher, poll_interval=0.02)

    async with anyio.create_task_group() as tg:
        await tg.start(engine.run)
        with anyio.fail_after(2):
            while len(fetcher.fetched) < 3:
                await anyio.sleep(0.005)
        tg.cancel_scope.cancel()


async def test_hung_peer_does_not_stall_refresh(make_snapshot: Callable[..., RepositorySnapshot]) -> None:
    directory = make_directory("laptop", "nas")
    await directory.start()
    laptop_proj = make_snapshot("proj", timestamp=1_700_000_000_000)

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == DETAILED_REPOS_PATH
        if request.url.host == "10.0.0.3":
            await anyio.sleep(30)
        return httpx.Response(200, content=orjson.dumps([laptop_proj.to_wire()]))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    async with SnapshotFetcher(timeout=0.2, client=client, logger=MagicMock()) as fetcher:
        engine = make_engine(
            directory, fetcher, [make_snapshot("proj", timestamp=1_700_000_100_000)]
        )

        started = anyio.current_time()
        with anyio.fail_after(2):
            await engine.refresh()
        elapsed = anyio.current_time() - started

        everything = await engine.view()
        nas_only = await engine.view("nas-3847")
    await client.aclose()

    assert elapsed < 1.0
    assert "laptop-3847" in engine.cache
    assert "nas-3847" not in engine.cache
    assert [entry.machine for entry in everything.entries] == ["studio", "laptop"]
    assert everything.entries[1].newer_on == ("studio",)
    assert nas_only.entries == ()
