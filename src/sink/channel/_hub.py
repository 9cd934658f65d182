"""Server-side fan-out of update frames."""

from types import TracebackType
from typing import Self, final

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from structlog.typing import FilteringBoundLogger

from sink.channel._frames import Frame, RepoChangedFrame
from sink.repository._models import RepositorySnapshot
from sink.utils import get_logger

DEFAULT_BUFFER_SIZE = 64


@final
class Subscription:
    """One subscriber's view of the hub.

    Iterate it to receive frames. Iteration ends when the subscription is
    closed or the hub dropped it for falling behind.
    """

    __slots__ = ("_dropped", "_hub", "_receive", "_send")

    def __init__(self, hub: "UpdateHub", buffer_size: int) -> None:
        self._hub = hub
        self._dropped = False
        self._send: MemoryObjectSendStream[Frame]
        self._receive: MemoryObjectReceiveStream[Frame]
        self._send, self._receive = anyio.create_memory_object_stream[Frame](buffer_size)

    @property
    def dropped(self) -> bool:
        """Return True if the hub ended this subscription for falling behind."""
        return self._dropped

    def __aiter__(self) -> MemoryObjectReceiveStream[Frame]:
        return self._receive

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def offer(self, frame: Frame) -> bool:
        """Queue a frame without waiting.

        Returns:
            False if the subscription is closed or its buffer is full. A
            full subscription is marked dropped and its stream ended.
        """
        try:
            self._send.send_nowait(frame)
        except anyio.WouldBlock:
            self._dropped = True
            self._send.close()
            return False
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            return False
        return True

    def end(self) -> None:
        """End the stream; buffered frames can still be received."""
        self._send.close()

    def close(self) -> None:
        """Leave the hub."""
        self._hub.discard(self)
        self._send.close()
        self._receive.close()


@final
class UpdateHub:
    """Broadcasts update frames to every connected observer.

    Each subscriber has a bounded buffer. Publishing never waits: a
    subscriber whose buffer is full is dropped, and it is expected to
    reconnect and resynchronize.
    """

    def __init__(
        self,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._buffer_size = buffer_size
        self._logger = logger or get_logger("hub")
        self._subscriptions: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Open a subscription for a new observer."""
        subscription = Subscription(self, self._buffer_size)
        self._subscriptions.append(subscription)
        return subscription

    def discard(self, subscription: Subscription) -> None:
        """Forget a subscription if present."""
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def broadcast(self, frame: Frame) -> None:
        """Queue a frame for every subscriber."""
        for subscription in tuple(self._subscriptions):
            if subscription.offer(frame):
                continue
            if subscription.dropped:
                self._logger.warning("subscriber_dropped", reason="buffer full")
            self.discard(subscription)

    def publish(self, snapshot: RepositorySnapshot) -> None:
        """Announce a refreshed repository snapshot."""
        self.broadcast(RepoChangedFrame(repo=snapshot))

    def close(self) -> None:
        """End every subscription."""
        for subscription in tuple(self._subscriptions):
            subscription.end()
        self._subscriptions.clear()
