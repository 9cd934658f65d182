"""Callback registry for in-process event fan-out.

Components that announce things (repository changed, peer up, peer down)
own one `Subscribers` per event kind. Subscribing returns an unsubscribe
callable so that owners can release their callbacks on teardown.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import final

from structlog.typing import FilteringBoundLogger

type Callback[T] = Callable[[T], Awaitable[None] | None]


@final
class Subscribers[T]:
    """Ordered set of callbacks for one kind of event.

    Callbacks may be plain functions or coroutine functions. They are invoked
    in subscription order. An exception raised by one callback is logged and
    does not prevent delivery to the rest.
    """

    __slots__ = ("_callbacks", "_event", "_logger")

    def __init__(self, event: str, logger: FilteringBoundLogger) -> None:
        self._event = event
        self._logger = logger
        self._callbacks: list[Callback[T]] = []

    def __len__(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: Callback[T]) -> Callable[[], None]:
        """Register a callback.

        Args:
            callback: Called with the event payload on every publish.

        Returns:
            A function that removes the callback. Calling it more than once
            is harmless.
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def clear(self) -> None:
        """Drop every registered callback."""
        self._callbacks.clear()

    async def publish(self, payload: T) -> None:
        """Deliver a payload to every callback.

        Args:
            payload: The event payload.
        """
        # Copy so callbacks may unsubscribe themselves while being called.
        for callback in tuple(self._callbacks):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                self._logger.exception("subscriber_failed", event_kind=self._event)
