# api/routes/graph_routes.py
# Роутер для графа namespace

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends

from api.routes import get_query_client, resolve_window
from core.config import settings
from graph.assembler import assemble_graph
from graph.context import QueryContext
from promql.client import QueryClient

router = APIRouter(prefix="/api/v0", tags=["graph"])


def new_context(client: QueryClient, window: str) -> QueryContext:
    return QueryContext(
        client=client,
        window=window,
        resource_type=settings.graph.resource_type,
        now=datetime.now(timezone.utc),
    )


async def _graph(client: QueryClient, namespace: str, window: str | None, strategy: str) -> dict:
    ctx = new_context(client, resolve_window(window))
    response = await assemble_graph(ctx, namespace, strategy, settings.graph.graph_timeout)
    return response.to_dict()


@router.get("/namespace/")
async def graph_all_namespaces(
    window: str | None = None,
    strategy: Literal["full", "async"] = "full",
    client: QueryClient = Depends(get_query_client),
):
    """Graph across every namespace visible to Prometheus."""
    return await _graph(client, "", window, strategy)


@router.get("/namespace/{namespace}")
async def graph_by_namespace(
    namespace: str,
    window: str | None = None,
    strategy: Literal["full", "async"] = "full",
    client: QueryClient = Depends(get_query_client),
):
    """Edges touching ``namespace`` and the nodes of ``namespace``."""
    return await _graph(client, namespace, window, strategy)
