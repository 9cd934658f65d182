"""Discovery transport protocol."""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from sink.discovery._models import Advertisement, DiscoveryEvent


@runtime_checkable
class DiscoveryTransport(Protocol):
    """Publishes this node and reports other advertisements.

    A transport may be started again after it has been stopped.
    """

    async def start(self, advertisement: Advertisement) -> None:
        """Publish the advertisement and begin browsing.

        Raises:
            DiscoveryError: If the network cannot be reached.
        """
        ...

    def events(self) -> AsyncIterator[DiscoveryEvent]:
        """Iterate discovery events until the transport is stopped.

        Advertisements that were already present when browsing started are
        reported as UP events. The transport's own advertisement may be
        reported too.
        """
        ...

    async def stop(self) -> None:
        """Withdraw the advertisement and stop browsing. Idempotent."""
        ...
