from fastapi import APIRouter

from sink.server._deps import NodeDep
from sink.sync import AggregatedView

router = APIRouter(prefix="", tags=["aggregate"])


@router.get("/aggregate")
async def get_aggregate(node: NodeDep, scope: str | None = None) -> AggregatedView:
    """Merged view of every machine's repositories.

    ``scope`` is ``all`` (the default) or a machine id.
    """
    return await node.view(scope)
