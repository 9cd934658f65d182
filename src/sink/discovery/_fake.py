"""In-memory discovery network for tests and single-host setups.

Every transport attached to a FakeDiscoveryNetwork sees every advertisement
on it, including its own, the way a multicast segment behaves.
"""

import math
from collections.abc import AsyncIterator
from typing import final

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from sink.discovery._models import (
    Advertisement,
    DiscoveryEvent,
    DiscoveryEventKind,
    ServiceRecord,
)

FAKE_SERVICE_SUFFIX = "_sink-git._tcp.fake."


@final
class FakeDiscoveryNetwork:
    """A shared segment that fake transports publish to and browse."""

    def __init__(self) -> None:
        self._records: dict[str, ServiceRecord] = {}
        self._transports: list[FakeDiscoveryTransport] = []

    @property
    def records(self) -> tuple[ServiceRecord, ...]:
        """Return the advertisements currently on the segment."""
        return tuple(self._records.values())

    def transport(self, host: str = "127.0.0.1") -> "FakeDiscoveryTransport":
        """Create a transport attached to this network."""
        return FakeDiscoveryTransport(self, host=host)

    def announce(self, record: ServiceRecord) -> None:
        """Publish or re-publish a record to every attached transport."""
        self._records[record.instance] = record
        event = DiscoveryEvent(kind=DiscoveryEventKind.UP, instance=record.instance, record=record)
        for transport in tuple(self._transports):
            transport.deliver(event)

    def withdraw(self, instance: str) -> None:
        """Remove a record and notify every attached transport."""
        if self._records.pop(instance, None) is None:
            return
        event = DiscoveryEvent(kind=DiscoveryEventKind.DOWN, instance=instance)
        for transport in tuple(self._transports):
            transport.deliver(event)

    def attach(self, transport: "FakeDiscoveryTransport") -> None:
        """Attach a transport and replay the current records to it."""
        if transport in self._transports:
            return
        self._transports.append(transport)
        for record in tuple(self._records.values()):
            transport.deliver(
                DiscoveryEvent(kind=DiscoveryEventKind.UP, instance=record.instance, record=record)
            )

    def detach(self, transport: "FakeDiscoveryTransport") -> None:
        """Detach a transport. It receives no further events."""
        if transport in self._transports:
            self._transports.remove(transport)


@final
class FakeDiscoveryTransport:
    """DiscoveryTransport backed by a FakeDiscoveryNetwork."""

    def __init__(self, network: FakeDiscoveryNetwork, *, host: str = "127.0.0.1") -> None:
        self._network = network
        self._host = host
        self._instance: str | None = None
        self._send: MemoryObjectSendStream[DiscoveryEvent] | None = None
        self._receive: MemoryObjectReceiveStream[DiscoveryEvent] | None = None

    @property
    def started(self) -> bool:
        """Return True between start() and stop()."""
        return self._instance is not None

    async def start(self, advertisement: Advertisement) -> None:
        if self._instance is not None:
            return
        self._send, self._receive = anyio.create_memory_object_stream[DiscoveryEvent](math.inf)
        self._instance = f"{advertisement.display_name}-{advertisement.port}.{FAKE_SERVICE_SUFFIX}"
        self._network.attach(self)
        self._network.announce(
            ServiceRecord(
                instance=self._instance,
                display_name=advertisement.display_name,
                host=self._host,
                port=advertisement.port,
                addresses=(self._host,),
                self_id=advertisement.self_id,
                protocol_version=advertisement.protocol_version,
            )
        )

    def deliver(self, event: DiscoveryEvent) -> None:
        """Queue an event for ``events()``. Dropped if not started."""
        if self._send is None:
            return
        try:
            self._send.send_nowait(event)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            pass

    async def events(self) -> AsyncIterator[DiscoveryEvent]:
        if self._receive is None:
            return
        async with self._receive.clone() as receive:
            async for event in receive:
                yield event

    async def stop(self) -> None:
        instance, self._instance = self._instance, None
        if instance is None:
            return
        self._network.detach(self)
        self._network.withdraw(instance)
        if self._send is not None:
            self._send.close()
        if self._receive is not None:
            self._receive.close()
        self._send = None
        self._receive = None
