"""Client side of the update channel.

An UpdateObserver keeps one connection to a node's ``/ws`` endpoint open
for as long as it runs:

    idle -> connecting -> connected -> backoff -> connecting -> ... -> closed

Every (re)connect optionally resynchronizes the full repository list, since
frames sent while disconnected are lost. Keep-alive pings go out every
``ping_interval`` seconds; a connection that has not answered the previous
ping by the next tick is considered dead and replaced.
"""

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from enum import StrEnum
from typing import Protocol, final

import anyio
import httpx
from anyio.abc import TaskStatus
from structlog.typing import FilteringBoundLogger
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from sink.channel._backoff import FixedBackoff
from sink.channel._cache import RepositoryCache
from sink.channel._frames import (
    ConnectedFrame,
    PingFrame,
    PongFrame,
    RepoChangedFrame,
    encode_frame,
    parse_frame,
)
from sink.exceptions import ChannelError
from sink.repository._models import RepositorySnapshot
from sink.utils import Callback, Subscribers, get_logger

DEFAULT_PING_INTERVAL = 30.0

_LINK_ERRORS = (
    WebSocketException,
    OSError,
    anyio.EndOfStream,
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
)


class ObserverState(StrEnum):
    """Connection lifecycle states of an UpdateObserver.

    - IDLE: Created, not yet running
    - CONNECTING: Opening a connection
    - CONNECTED: Connection open, receiving frames
    - BACKOFF: Waiting before the next connection attempt
    - CLOSED: Stopped for good
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"
    CLOSED = "closed"


class ObserverLink(Protocol):
    """The client end of one connection. websockets' ClientConnection fits."""

    async def send(self, message: str) -> None: ...

    async def recv(self) -> str | bytes: ...


type Connector = Callable[[str], AbstractAsyncContextManager[ObserverLink]]


def websockets_connector(url: str) -> AbstractAsyncContextManager[ObserverLink]:
    """Open a websocket with protocol-level pings disabled.

    Keep-alive is done with ``ping``/``pong`` frames instead, which browsers
    and other nodes understand too.
    """
    return connect(url, ping_interval=None)


def channel_url(host: str, port: int, machine: str | None = None) -> str:
    """Build the update channel URL of a node."""
    params = {"machine": machine} if machine else None
    return str(httpx.URL(f"ws://{host}:{port}/ws", params=params))


@final
class UpdateObserver:
    """Follows a node's repository changes over the update channel.

    Example:
        >>> observer = UpdateObserver(channel_url("studio.local", 3847), resync=reload)
        >>> observer.subscribe(print)
        >>> async with anyio.create_task_group() as tg:
        ...     await tg.start(observer.run)
    """

    def __init__(
        self,
        url: str,
        *,
        resync: Callable[[], Awaitable[None]] | None = None,
        cache: RepositoryCache | None = None,
        ping_interval: float = DEFAULT_PING_INTERVAL,
        backoff: FixedBackoff | None = None,
        connector: Connector = websockets_connector,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._url = url
        self._resync = resync
        self._cache = cache or RepositoryCache()
        self._ping_interval = ping_interval
        self._backoff = backoff or FixedBackoff()
        self._connector = connector
        self._logger = logger or get_logger("observer")
        self._state = ObserverState.IDLE
        self._machine: str | None = None
        self._awaiting_pong = False
        self._scope: anyio.CancelScope | None = None
        self._changes: Subscribers[RepositorySnapshot] = Subscribers(
            "repository_changed", self._logger
        )
        self._states: Subscribers[ObserverState] = Subscribers("observer_state", self._logger)

    @property
    def url(self) -> str:
        """Return the channel URL."""
        return self._url

    @property
    def state(self) -> ObserverState:
        """Return the current connection state."""
        return self._state

    @property
    def machine(self) -> str | None:
        """Return the machine name from the latest handshake."""
        return self._machine

    @property
    def cache(self) -> RepositoryCache:
        """Return the repository list kept current by this observer."""
        return self._cache

    def subscribe(self, callback: Callback[RepositorySnapshot]) -> Callable[[], None]:
        """Register a callback for every ``repo-changed`` frame."""
        return self._changes.subscribe(callback)

    def subscribe_state(self, callback: Callback[ObserverState]) -> Callable[[], None]:
        """Register a callback for state transitions."""
        return self._states.subscribe(callback)

    async def _transition(self, state: ObserverState) -> None:
        if state is self._state:
            return
        self._logger.debug("observer_state", url=self._url, previous=self._state.value, state=state.value)
        self._state = state
        await self._states.publish(state)

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        """Connect and reconnect until ``close()`` is called or the task is cancelled.

        Raises:
            ChannelError: If the observer was already started.
        """
        if self._state is not ObserverState.IDLE:
            msg = f"Observer is {self._state.value}, it can only be run once"
            raise ChannelError(msg)

        try:
            with anyio.CancelScope() as scope:
                self._scope = scope
                task_status.started()
                await self._connect_forever()
        finally:
            self._scope = None
            self._state = ObserverState.CLOSED
            self._logger.debug("observer_closed", url=self._url)

    def close(self) -> None:
        """Stop the keep-alive, any pending reconnect and the connection."""
        if self._scope is not None:
            self._scope.cancel()
        self._state = ObserverState.CLOSED

    async def _connect_forever(self) -> None:
        attempt = 0
        while True:
            await self._transition(ObserverState.CONNECTING)
            try:
                async with self._connector(self._url) as link:
                    attempt = 0
                    await self._transition(ObserverState.CONNECTED)
                    await self._run_resync()
                    await self._session(link)
            except _LINK_ERRORS as e:
                self._logger.warning(
                    "connection_failed", url=self._url, error=str(e) or type(e).__name__
                )

            await self._transition(ObserverState.BACKOFF)
            delay = self._backoff.delay(attempt)
            self._logger.debug("reconnect_scheduled", url=self._url, delay=delay, attempt=attempt)
            await anyio.sleep(delay)
            attempt += 1

    async def _run_resync(self) -> None:
        if self._resync is None:
            return
        try:
            await self._resync()
        except Exception:  # noqa: BLE001
            self._logger.exception("resync_failed", url=self._url)

    async def _session(self, link: ObserverLink) -> None:
        self._awaiting_pong = False
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._keepalive, link, tg.cancel_scope)
            try:
                while True:
                    await self._dispatch(await link.recv())
            except _LINK_ERRORS as e:
                self._logger.info("connection_lost", url=self._url, error=str(e) or type(e).__name__)
            tg.cancel_scope.cancel()

    async def _keepalive(self, link: ObserverLink, session: anyio.CancelScope) -> None:
        while True:
            await anyio.sleep(self._ping_interval)
            if self._awaiting_pong:
                self._logger.warning("keepalive_timeout", url=self._url)
                session.cancel()
                return
            self._awaiting_pong = True
            try:
                await link.send(encode_frame(PingFrame()))
            except _LINK_ERRORS:
                session.cancel()
                return

    async def _dispatch(self, message: str | bytes) -> None:
        frame = parse_frame(message)
        if isinstance(frame, PongFrame):
            self._awaiting_pong = False
        elif isinstance(frame, RepoChangedFrame):
            self._cache.apply(frame.repo)
            await self._changes.publish(frame.repo)
        elif isinstance(frame, ConnectedFrame):
            self._machine = frame.machine
            self._logger.info("observer_connected", url=self._url, machine=frame.machine)
        elif frame is None:
            self._logger.debug("frame_ignored", url=self._url)
