"""Server side of the update channel."""

from typing import Protocol

import anyio
from fastapi import WebSocketDisconnect
from structlog.typing import FilteringBoundLogger

from sink.channel._frames import (
    ConnectedFrame,
    Frame,
    PingFrame,
    PongFrame,
    encode_frame,
    parse_frame,
)
from sink.channel._hub import UpdateHub
from sink.utils import get_logger

# Close codes
UNKNOWN_MACHINE_CODE = 4404
SUBSCRIBER_DROPPED_CODE = 1013


class ObserverConnection(Protocol):
    """The server end of one observer connection.

    FastAPI's WebSocket satisfies this protocol. ``receive_text`` raises
    WebSocketDisconnect once the observer is gone.
    """

    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


async def serve_observer(
    connection: ObserverConnection,
    hub: UpdateHub,
    machine: str,
    *,
    logger: FilteringBoundLogger | None = None,
) -> None:
    """Serve one observer until it disconnects or falls behind.

    Sends the ``connected`` handshake, then forwards hub frames while
    answering pings. Frames other than ``ping`` are ignored, malformed ones
    included. An observer dropped by the hub is closed with code 1013 so it
    reconnects.
    """
    log = logger or get_logger("channel")
    send_lock = anyio.Lock()

    async def send(frame: Frame) -> None:
        async with send_lock:
            await connection.send_text(encode_frame(frame))

    with hub.subscribe() as subscription:
        try:
            await send(ConnectedFrame(machine=machine))
        except WebSocketDisconnect:
            return
        log.debug("observer_connected", observers=len(hub))

        async with anyio.create_task_group() as tg:

            async def forward() -> None:
                try:
                    async for frame in subscription:
                        await send(frame)
                except WebSocketDisconnect:
                    pass
                tg.cancel_scope.cancel()

            async def answer() -> None:
                try:
                    while True:
                        try:
                            text = await connection.receive_text()
                        except KeyError:
                            continue  # binary frame
                        frame = parse_frame(text)
                        if isinstance(frame, PingFrame):
                            await send(PongFrame())
                except WebSocketDisconnect:
                    pass
                tg.cancel_scope.cancel()

            tg.start_soon(forward)
            tg.start_soon(answer)

        if subscription.dropped:
            log.warning("observer_dropped", reason="buffer full")
            with anyio.CancelScope(shield=True):
                await connection.close(code=SUBSCRIBER_DROPPED_CODE, reason="Too slow")

    log.debug("observer_disconnected", observers=len(hub))
