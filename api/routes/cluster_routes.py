# api/routes/cluster_routes.py

from fastapi import APIRouter, Depends

from api.routes import get_query_client, resolve_window
from core.config import settings
from promql.client import QueryClient
from promql.cluster import cluster_info

router = APIRouter(prefix="/api/v0", tags=["cluster"])


@router.get("/cluster")
async def cluster(window: str | None = None, client: QueryClient = Depends(get_query_client)):
    """Top-level cAdvisor usage plus the overall inbound success rate."""
    return await cluster_info(client, resolve_window(window), settings.graph.cluster_timeout)
