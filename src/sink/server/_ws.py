from fastapi import APIRouter, WebSocket

from sink.channel import UNKNOWN_MACHINE_CODE, serve_observer
from sink.node import SinkNode

router = APIRouter()


@router.websocket("/ws")
async def updates(websocket: WebSocket, machine: str | None = None) -> None:
    """Live repository updates for this node.

    ``machine`` optionally names the machine the observer expects; any
    other name is refused with close code 4404.
    """
    node: SinkNode = websocket.app.state.node
    await websocket.accept()
    if machine and machine not in (node.machine_name, node.self_id):
        await websocket.close(code=UNKNOWN_MACHINE_CODE, reason=f"Unknown machine: {machine}")
        return
    await serve_observer(websocket, node.hub, node.machine_name)
