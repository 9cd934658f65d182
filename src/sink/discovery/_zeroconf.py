"""mDNS/DNS-SD discovery transport built on zeroconf's asyncio API."""

import socket
from collections.abc import AsyncIterator
from typing import final

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from structlog.typing import FilteringBoundLogger
from zeroconf import IPVersion, ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from sink.config import SERVICE_TYPE
from sink.discovery._models import (
    Advertisement,
    DiscoveryEvent,
    DiscoveryEventKind,
    ServiceRecord,
)
from sink.discovery._network import local_ipv4_addresses
from sink.exceptions import DiscoveryError
from sink.utils import get_logger

DEFAULT_RESOLVE_TIMEOUT_MS = 3000
_CHANGE_BUFFER = 256

type _Change = tuple[ServiceStateChange, str]


def _decode(value: bytes | None) -> str | None:
    if value is None:
        return None
    return value.decode("utf-8", errors="replace")


def instance_name(advertisement: Advertisement, service_type: str = SERVICE_TYPE) -> str:
    """Return the DNS-SD instance name for an advertisement."""
    return f"{advertisement.display_name}-{advertisement.port}.{service_type}"


def record_from_info(
    info: AsyncServiceInfo, service_type: str = SERVICE_TYPE
) -> ServiceRecord | None:
    """Convert resolved service info into a record.

    Returns:
        The record, or None if the info carries no usable address or port.
    """
    if info.port is None:
        return None

    properties = {
        key.decode("utf-8", errors="replace"): _decode(value)
        for key, value in info.properties.items()
    }
    addresses = tuple(info.parsed_addresses(IPVersion.V4Only))
    server = (info.server or "").rstrip(".")
    host = addresses[0] if addresses else server
    if not host:
        return None

    display_name = properties.get("name") or info.name.removesuffix(f".{service_type}")
    return ServiceRecord(
        instance=info.name,
        display_name=display_name,
        host=host,
        port=info.port,
        addresses=addresses,
        self_id=properties.get("id"),
        protocol_version=properties.get("version"),
    )


@final
class ZeroconfTransport:
    """Advertises and browses ``_sink-git._tcp`` services over multicast DNS.

    The browser callback runs on the event loop and only enqueues the change;
    service info is resolved by the consumer of ``events()``.
    """

    def __init__(
        self,
        service_type: str = SERVICE_TYPE,
        *,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._service_type = service_type
        self._resolve_timeout_ms = resolve_timeout_ms
        self._logger = logger or get_logger("discovery")
        self._zeroconf: AsyncZeroconf | None = None
        self._browser: AsyncServiceBrowser | None = None
        self._info: AsyncServiceInfo | None = None
        self._send: MemoryObjectSendStream[_Change] | None = None
        self._receive: MemoryObjectReceiveStream[_Change] | None = None

    async def start(self, advertisement: Advertisement) -> None:
        if self._zeroconf is not None:
            return

        addresses = local_ipv4_addresses()
        info = AsyncServiceInfo(
            self._service_type,
            instance_name(advertisement, self._service_type),
            addresses=[socket.inet_aton(address) for address in addresses],
            port=advertisement.port,
            properties={
                "id": advertisement.self_id,
                "name": advertisement.display_name,
                "version": advertisement.protocol_version,
            },
            server=f"{socket.gethostname()}.local.",
        )

        aiozc = AsyncZeroconf(ip_version=IPVersion.V4Only)
        try:
            registration = await aiozc.async_register_service(info, allow_name_change=True)
            await registration
        except (OSError, RuntimeError) as e:
            await aiozc.async_close()
            msg = f"Failed to advertise on the local network: {e}"
            raise DiscoveryError(msg) from e

        self._send, self._receive = anyio.create_memory_object_stream[_Change](_CHANGE_BUFFER)
        self._zeroconf = aiozc
        self._info = info
        self._browser = AsyncServiceBrowser(
            aiozc.zeroconf, [self._service_type], handlers=[self._on_service_state_change]
        )
        self._logger.info(
            "advertising",
            instance=info.name,
            port=advertisement.port,
            addresses=addresses,
        )

    def _on_service_state_change(
        self,
        zeroconf: Zeroconf,  # noqa: ARG002
        service_type: str,  # noqa: ARG002
        name: str,
        state_change: ServiceStateChange,
    ) -> None:
        if self._send is None:
            return
        try:
            self._send.send_nowait((state_change, name))
        except anyio.WouldBlock:
            self._logger.warning("discovery_event_dropped", instance=name)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            pass

    async def _resolve(self, name: str) -> ServiceRecord | None:
        if self._zeroconf is None:
            return None
        info = AsyncServiceInfo(self._service_type, name)
        if not await info.async_request(self._zeroconf.zeroconf, self._resolve_timeout_ms):
            self._logger.debug("resolve_failed", instance=name)
            return None
        return record_from_info(info, self._service_type)

    async def events(self) -> AsyncIterator[DiscoveryEvent]:
        if self._receive is None:
            return
        async with self._receive.clone() as receive:
            async for state_change, name in receive:
                if state_change is ServiceStateChange.Removed:
                    yield DiscoveryEvent(kind=DiscoveryEventKind.DOWN, instance=name)
                    continue
                record = await self._resolve(name)
                if record is not None:
                    yield DiscoveryEvent(kind=DiscoveryEventKind.UP, instance=name, record=record)

    async def stop(self) -> None:
        aiozc, self._zeroconf = self._zeroconf, None
        if aiozc is None:
            return

        with anyio.CancelScope(shield=True):
            if self._browser is not None:
                await self._browser.async_cancel()
            if self._info is not None:
                unregistration = await aiozc.async_unregister_service(self._info)
                await unregistration
            await aiozc.async_close()

        if self._send is not None:
            self._send.close()
        if self._receive is not None:
            self._receive.close()
        self._browser = None
        self._info = None
        self._send = None
        self._receive = None
        self._logger.info("advertisement_withdrawn")
