"""In-process loopback connections between observers and a hub.

A LoopbackConnector is a Connector that, instead of opening a websocket,
pairs the observer with ``serve_observer`` over memory streams in the same
event loop.
"""

import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from fastapi import WebSocketDisconnect

from sink.channel._hub import UpdateHub
from sink.channel._observer import ObserverLink
from sink.channel._server import serve_observer


class LoopbackServerEnd:
    """Server end of a loopback connection (an ObserverConnection)."""

    def __init__(
        self,
        outgoing: MemoryObjectSendStream[str],
        incoming: MemoryObjectReceiveStream[str],
    ) -> None:
        self._outgoing = outgoing
        self._incoming = incoming
        self.close_code: int | None = None

    async def send_text(self, data: str) -> None:
        try:
            await self._outgoing.send(data)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise WebSocketDisconnect(code=1006) from e

    async def receive_text(self) -> str:
        try:
            return await self._incoming.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError) as e:
            raise WebSocketDisconnect(code=1000) from e

    async def close(self, code: int = 1000, reason: str | None = None) -> None:  # noqa: ARG002
        if self.close_code is None:
            self.close_code = code
        self._outgoing.close()


class LoopbackClientEnd:
    """Client end of a loopback connection (an ObserverLink)."""

    def __init__(
        self,
        outgoing: MemoryObjectSendStream[str],
        incoming: MemoryObjectReceiveStream[str],
    ) -> None:
        self._outgoing = outgoing
        self._incoming = incoming

    async def send(self, message: str) -> None:
        await self._outgoing.send(message)

    async def recv(self) -> str:
        return await self._incoming.receive()

    def close(self) -> None:
        self._outgoing.close()
        self._incoming.close()


class LoopbackConnector:
    """Connector serving observers straight from a hub.

    Attributes:
        connections: Number of connections opened so far.
        reachable: When False every connection attempt is refused, as if the
            node were down.
        servers: Server ends of every connection, in opening order.
    """

    def __init__(self, hub: UpdateHub, machine: str, *, reachable: bool = True) -> None:
        self._hub = hub
        self._machine = machine
        self.connections = 0
        self.reachable = reachable
        self.servers: list[LoopbackServerEnd] = []

    async def _serve(self, server: LoopbackServerEnd) -> None:
        await serve_observer(server, self._hub, self._machine)
        await server.close()

    @asynccontextmanager
    async def __call__(self, url: str) -> AsyncIterator[ObserverLink]:
        if not self.reachable:
            msg = f"Connection refused: {url}"
            raise ConnectionRefusedError(msg)

        to_server_send, to_server_receive = anyio.create_memory_object_stream[str](math.inf)
        to_client_send, to_client_receive = anyio.create_memory_object_stream[str](math.inf)
        server = LoopbackServerEnd(to_client_send, to_server_receive)
        client = LoopbackClientEnd(to_server_send, to_client_receive)
        self.connections += 1
        self.servers.append(server)

        async with anyio.create_task_group() as tg:
            tg.start_soon(self._serve, server)
            try:
                yield client
            finally:
                client.close()
                tg.cancel_scope.cancel()
