# promql/cluster.py
"""Top-level cluster usage (cAdvisor) and overall inbound success rate."""

import asyncio
import logging
import math

from core.errors import GraphTimeoutError
from graph.models import SCALAR, VECTOR, QueryResult
from promql.client import QueryClient
from promql.queries import (
    CLUSTER_CPU_USAGE_1M,
    CLUSTER_FILESYSTEM_USAGE,
    CLUSTER_MEMORY_USAGE,
    overall_success_rate_query,
)

logger = logging.getLogger(__name__)


def _number(value: float) -> float | None:
    return value if math.isfinite(value) else None


def render_result(result: QueryResult):
    """JSON-safe rendering of a cluster query result; NaN and infinities become null."""
    if result.result_type == VECTOR:
        return [{"metric": s.metric, "value": _number(s.value)} for s in result.value or []]
    if result.result_type == SCALAR:
        return _number(result.value)
    return result.value


async def cluster_info(client: QueryClient, window: str, timeout: float = 10.0) -> dict:
    """Memory, CPU, filesystem usage and overall success rate.

    Each query runs under its own ``timeout``; the first failure aborts.
    """
    queries = {
        "memory": CLUSTER_MEMORY_USAGE,
        "cpu": CLUSTER_CPU_USAGE_1M,
        "filesystem": CLUSTER_FILESYSTEM_USAGE,
        "overallSuccessRate": overall_success_rate_query(window),
    }
    resp = {}
    for name, expr in queries.items():
        logger.debug("Performing cluster query %s: %s", name, expr)
        try:
            result = await asyncio.wait_for(client.query(expr), timeout)
        except asyncio.TimeoutError:
            raise GraphTimeoutError(f"cluster query {name!r} timed out after {timeout}s") from None
        if result.warnings:
            logger.warning("query warnings: %s", list(result.warnings))
        resp[name] = render_result(result)
    return resp
