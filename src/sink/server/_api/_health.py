from fastapi import APIRouter

from sink.discovery import Peer, now_ms
from sink.server._deps import NodeDep
from sink.server._schemas import HealthResponse, PeersResponse

router = APIRouter(prefix="", tags=["health"])


@router.get("/health")
async def get_health(node: NodeDep) -> HealthResponse:
    return HealthResponse(name=node.machine_name, timestamp=now_ms())


@router.get("/self")
async def get_self(node: NodeDep) -> Peer:
    return node.directory.self_peer()


@router.get("/peers")
async def get_peers(node: NodeDep) -> PeersResponse:
    return PeersResponse(local=node.directory.self_peer(), peers=node.directory.peers())
