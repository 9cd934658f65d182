# pyright: reportAny=false
"""Fetches repository snapshots from peer nodes over HTTP."""

from types import TracebackType
from typing import Self, final

import anyio
import httpx
from pydantic import TypeAdapter, ValidationError
from structlog.typing import FilteringBoundLogger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from sink.discovery._models import Peer
from sink.exceptions import PeerFetchError
from sink.repository._models import RepositorySnapshot
from sink.utils import get_logger

DEFAULT_FETCH_TIMEOUT = 5.0
DETAILED_REPOS_PATH = "/api/repos/detailed"

_SNAPSHOTS = TypeAdapter(list[RepositorySnapshot])


@retry(
    retry=retry_if_exception_type(httpx.ConnectError),
    stop=stop_after_attempt(2),
    wait=wait_fixed(0.25),
    reraise=True,
)
async def _get_snapshots(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """GET a snapshot list, retrying once if the connection is refused."""
    return await client.get(url)


@final
class SnapshotFetcher:
    """Retrieves the detailed repository list of one peer.

    Every fetch is bounded by ``timeout`` seconds, the quick retry included.
    A peer that cannot answer in time, answers with an error status or
    sends something that does not parse is reported as unknown (None).

    The fetcher owns its httpx client unless one is passed in.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._logger = logger or get_logger("fetcher")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_or_raise(self, peer: Peer) -> list[RepositorySnapshot]:
        """Fetch a peer's snapshots.

        Raises:
            PeerFetchError: If the peer is unreachable, slow, answers with an
                error status or sends a malformed body.
        """
        url = f"{peer.base_url}{DETAILED_REPOS_PATH}"
        try:
            with anyio.fail_after(self._timeout):
                response = await _get_snapshots(self._client, url)
            response.raise_for_status()
            return _SNAPSHOTS.validate_json(response.content)
        except TimeoutError as e:
            msg = f"Peer {peer.id} did not answer within {self._timeout}s"
            raise PeerFetchError(msg, peer_id=peer.id, cause=e) from e
        except httpx.HTTPStatusError as e:
            msg = f"Peer {peer.id} answered {e.response.status_code}"
            raise PeerFetchError(msg, peer_id=peer.id, cause=e) from e
        except httpx.HTTPError as e:
            msg = f"Peer {peer.id} is unreachable: {e}"
            raise PeerFetchError(msg, peer_id=peer.id, cause=e) from e
        except ValidationError as e:
            msg = f"Peer {peer.id} sent a malformed repository list"
            raise PeerFetchError(msg, peer_id=peer.id, cause=e) from e

    async def fetch(self, peer: Peer) -> list[RepositorySnapshot] | None:
        """Fetch a peer's snapshots, or None if the peer is unknown right now."""
        try:
            snapshots = await self.fetch_or_raise(peer)
        except PeerFetchError as e:
            self._logger.warning("peer_fetch_failed", peer_id=peer.id, url=peer.base_url, error=str(e))
            return None
        self._logger.debug("peer_fetched", peer_id=peer.id, repositories=len(snapshots))
        return snapshots
