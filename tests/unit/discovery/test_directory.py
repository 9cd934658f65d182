"""Unit tests for the peer directory over the in-memory discovery network."""

from collections.abc import Callable
from dataclasses import replace
from unittest.mock import MagicMock

import anyio
import pytest

from sink.config import StaticPeerConfig
from sink.discovery import (
    Advertisement,
    DiscoveryEvent,
    DiscoveryEventKind,
    FakeDiscoveryNetwork,
    PeerDirectory,
    PeerEvent,
    PeerEventKind,
    PeerSource,
    ServiceRecord,
)
from sink.exceptions import DiscoveryError

pytestmark = pytest.mark.anyio


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0.005)


def make_directory(
    network: FakeDiscoveryNetwork | None,
    name: str,
    *,
    port: int = 3847,
    host: str = "127.0.0.1",
    static_peers: tuple[StaticPeerConfig, ...] = (),
) -> PeerDirectory:
    return PeerDirectory(
        network.transport(host) if network is not None else None,
        name=name,
        port=port,
        host=host,
        static_peers=static_peers,
        logger=MagicMock(),
        clock=lambda: 1_000,
    )


def record(name: str, *, port: int = 3847, host: str = "10.0.0.9", self_id: str | None = None) -> ServiceRecord:
    return ServiceRecord(
        instance=f"{name}-{port}._sink-git._tcp.local.",
        display_name=name,
        host=host,
        port=port,
        addresses=(host,),
        self_id=self_id,
    )


class FailingTransport:
    async def start(self, advertisement: Advertisement) -> None:
        msg = f"cannot advertise {advertisement.display_name}"
        raise DiscoveryError(msg)

    def events(self):  # noqa: ANN201
        raise AssertionError

    async def stop(self) -> None:
        raise AssertionError


@pytest.fixture
def network() -> FakeDiscoveryNetwork:
    return FakeDiscoveryNetwork()


class TestSelfDescription:
    def test_self_id_is_name_and_port(self) -> None:
        directory = make_directory(None, "studio", port=4000)

        assert directory.self_id == "studio-4000"
        assert directory.advertisement() == Advertisement(
            display_name="studio", port=4000, self_id="studio-4000"
        )

    def test_self_peer_describes_this_node(self) -> None:
        peer = make_directory(None, "studio", host="10.0.0.1").self_peer()

        assert peer.id == "studio-3847"
        assert peer.address == "10.0.0.1:3847"
        assert peer.last_seen == 1_000


class TestDiscovery:
    async def test_nodes_on_one_network_see_each_other(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio", host="10.0.0.1")
        laptop = make_directory(network, "laptop", host="10.0.0.2")

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            await tg.start(laptop.run)
            await wait_until(lambda: bool(studio.peers()) and bool(laptop.peers()))

            assert [peer.id for peer in studio.peers()] == ["laptop-3847"]
            assert [peer.id for peer in laptop.peers()] == ["studio-3847"]
            assert studio.peers()[0].base_url == "http://10.0.0.2:3847"
            tg.cancel_scope.cancel()

    async def test_own_advertisement_is_filtered(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio")
        events: list[PeerEvent] = []
        studio.subscribe(events.append)

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            await anyio.sleep(0.05)
            tg.cancel_scope.cancel()

        assert len(network.records) == 0
        assert events == []

    async def test_peer_up_is_announced_once(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio")
        events: list[PeerEvent] = []
        studio.subscribe(events.append)

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            network.announce(record("laptop"))
            network.announce(record("laptop"))
            await wait_until(lambda: bool(studio.peers()))
            await anyio.sleep(0.02)
            tg.cancel_scope.cancel()

        assert [(event.kind, event.peer.id) for event in events] == [(PeerEventKind.UP, "laptop-3847")]

    async def test_withdrawn_peer_goes_down(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio")
        events: list[PeerEvent] = []
        studio.subscribe(events.append)
        laptop = record("laptop")

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            network.announce(laptop)
            await wait_until(lambda: bool(studio.peers()))
            network.withdraw(laptop.instance)
            await wait_until(lambda: not studio.peers())
            tg.cancel_scope.cancel()

        assert [event.kind for event in events] == [PeerEventKind.UP, PeerEventKind.DOWN]
        assert studio.get("laptop-3847") is None

    async def test_stopping_a_node_removes_it_elsewhere(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio")
        laptop = make_directory(network, "laptop")

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            async with anyio.create_task_group() as inner:
                await inner.start(laptop.run)
                await wait_until(lambda: bool(studio.peers()))
                inner.cancel_scope.cancel()
            await wait_until(lambda: not studio.peers())
            tg.cancel_scope.cancel()

        assert not laptop.started

    async def test_advertised_self_id_is_the_key(self) -> None:
        studio = make_directory(None, "studio")
        await studio.start()

        await studio.handle(
            DiscoveryEvent(
                kind=DiscoveryEventKind.UP,
                instance="x._sink-git._tcp.local.",
                record=record("laptop", self_id="laptop-custom"),
            )
        )

        assert studio.get("laptop-custom") is not None
        assert studio.get("laptop-3847") is None

    async def test_down_for_unknown_instance_is_ignored(self) -> None:
        studio = make_directory(None, "studio")
        events: list[PeerEvent] = []
        studio.subscribe(events.append)
        await studio.start()

        await studio.handle(DiscoveryEvent(kind=DiscoveryEventKind.DOWN, instance="nobody"))

        assert events == []

    async def test_peer_stays_while_another_instance_advertises_it(self) -> None:
        studio = make_directory(None, "studio")
        events: list[PeerEvent] = []
        studio.subscribe(events.append)
        await studio.start()
        wired = record("laptop", host="10.0.0.9", self_id="laptop-3847")
        wireless = replace(wired, instance="laptop-3847 (2)._sink-git._tcp.local.", host="10.0.0.10")

        await studio.handle(DiscoveryEvent(kind=DiscoveryEventKind.UP, instance=wired.instance, record=wired))
        await studio.handle(
            DiscoveryEvent(kind=DiscoveryEventKind.UP, instance=wireless.instance, record=wireless)
        )
        await studio.handle(DiscoveryEvent(kind=DiscoveryEventKind.DOWN, instance=wired.instance))

        assert studio.get("laptop-3847") is not None
        assert [event.kind for event in events] == [PeerEventKind.UP]

        await studio.handle(DiscoveryEvent(kind=DiscoveryEventKind.DOWN, instance=wireless.instance))

        assert studio.get("laptop-3847") is None
        assert [event.kind for event in events] == [PeerEventKind.UP, PeerEventKind.DOWN]

    async def test_stop_clears_peers_and_restart_rediscovers(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(network, "studio")
        network.announce(record("laptop"))

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            await wait_until(lambda: bool(studio.peers()))
            tg.cancel_scope.cancel()

        assert studio.peers() == ()

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            await wait_until(lambda: bool(studio.peers()))
            tg.cancel_scope.cancel()


class TestStaticPeers:
    async def test_static_peers_are_present_after_start(self) -> None:
        studio = make_directory(
            None,
            "studio",
            static_peers=(StaticPeerConfig(name="nas", host="10.0.0.5", port=3847),),
        )
        events: list[PeerEvent] = []
        studio.subscribe(events.append)

        await studio.start()

        peer = studio.get("nas-3847")
        assert peer is not None
        assert peer.source is PeerSource.STATIC
        assert [event.kind for event in events] == [PeerEventKind.UP]

    async def test_static_peer_matching_self_is_skipped(self) -> None:
        studio = make_directory(
            None,
            "studio",
            static_peers=(StaticPeerConfig(name="studio", host="10.0.0.1", port=3847),),
        )

        await studio.start()

        assert studio.peers() == ()

    async def test_static_peer_survives_withdrawal(self, network: FakeDiscoveryNetwork) -> None:
        studio = make_directory(
            network,
            "studio",
            static_peers=(StaticPeerConfig(name="nas", host="10.0.0.5", port=3847),),
        )
        nas = record("nas", host="10.0.0.5")

        async with anyio.create_task_group() as tg:
            await tg.start(studio.run)
            network.announce(nas)
            await anyio.sleep(0.02)
            network.withdraw(nas.instance)
            await anyio.sleep(0.02)
            tg.cancel_scope.cancel()
            peers = studio.peers()

        assert [peer.id for peer in peers] == ["nas-3847"]
        assert peers[0].source is PeerSource.STATIC

    async def test_transport_failure_keeps_static_peers(self) -> None:
        studio = PeerDirectory(
            FailingTransport(),
            name="studio",
            port=3847,
            static_peers=(StaticPeerConfig(name="nas", host="10.0.0.5", port=3847),),
            logger=MagicMock(),
        )

        await studio.start()

        assert studio.started
        assert not studio.browsing
        assert [peer.id for peer in studio.peers()] == ["nas-3847"]
