# api/websocket.py
"""WebSocket endpoint streaming the partial graph, then the full one."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.routes import resolve_window
from api.routes.graph_routes import new_context
from core.config import settings
from core.errors import MeshScopeError
from graph.assembler import assemble_graph
from graph.models import GraphResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/api/v0/ws/graph")
async def graph_ws(websocket: WebSocket, namespace: str = "", window: str | None = None):
    """Send the ``partial`` graph as soon as edges are known, then ``full``.

    On failure a single ``{"error": ...}`` message is sent and the socket
    is closed with 1011.
    """
    await websocket.accept()
    logger.info("WebSocket graph stream: namespace=%r", namespace)

    async def send_partial(partial: GraphResponse) -> None:
        await websocket.send_json(partial.to_dict())

    try:
        ctx = new_context(websocket.app.state.query_client, resolve_window(window))
        full = await assemble_graph(ctx, namespace, "async", settings.graph.graph_timeout,
                                    on_partial=send_partial)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected before the graph was complete")
        return
    except MeshScopeError as e:
        logger.error("%s", e)
        await websocket.send_json({"error": str(e)})
        await websocket.close(code=1011)
        return

    await websocket.send_json(full.to_dict())
    await websocket.close()
