# graph/assembler.py
"""Assemble the namespace graph response.

Two strategies share one interface:

* ``FullStrategy`` — edges get per-edge outbound stats during
  correlation, nodes get per-node inbound stats one at a time.
* ``PartialThenFullStrategy`` — the inbound and outbound bulk baskets run
  concurrently with identity fetching and correlation; a stats-less
  ``partial`` response is handed to ``on_partial`` before the stats are
  attached by lookup and the ``full`` response is returned.

Every response passes ``check_nan`` before it leaves this module.
"""

import asyncio
import copy
import logging
import math
from typing import Awaitable, Callable

from core.errors import GraphTimeoutError, NaNStatsError
from graph.builder import build_node_list
from graph.context import QueryContext
from graph.correlator import process_edge_metrics
from graph.models import FULL, PARTIAL, GraphResponse, Sample
from graph.stats import attach_inbound_stats, attach_outbound_stats, direction_stat_query, stat_query
from promql.queries import inbound_identity_query, outbound_identity_query

logger = logging.getLogger(__name__)

PartialCallback = Callable[[GraphResponse], Awaitable[None]]


def check_nan(response: GraphResponse) -> None:
    """Raise ``NaNStatsError`` for the first NaN or infinite stats value found."""
    for node in response.nodes:
        for key, value in node.stats.items():
            if not math.isfinite(value):
                raise NaNStatsError("node", node.app, node.version, node.namespace, key, value)
    for edge in response.edges:
        for key, value in edge.stats.items():
            if not math.isfinite(value):
                raise NaNStatsError("edge from", edge.from_app, edge.from_version, edge.from_namespace, key, value)


async def fetch_identity_vectors(ctx: QueryContext) -> tuple[list[Sample], list[Sample]]:
    """(inbound, outbound) identity samples, queried concurrently."""
    inbound, outbound = await asyncio.gather(
        ctx.vector(inbound_identity_query(ctx.window, ctx.resource_type)),
        ctx.vector(outbound_identity_query(ctx.window, ctx.resource_type)),
    )
    logger.debug("identity samples: inbound=%d outbound=%d", len(inbound), len(outbound))
    return inbound, outbound


class CorrelationStrategy:
    """Builds a ``GraphResponse`` for one namespace ("" = all namespaces)."""

    name = ""

    async def assemble(self, ctx: QueryContext, namespace: str = "",
                       on_partial: PartialCallback | None = None) -> GraphResponse:
        raise NotImplementedError


class FullStrategy(CorrelationStrategy):
    name = "full"

    async def assemble(self, ctx: QueryContext, namespace: str = "",
                       on_partial: PartialCallback | None = None) -> GraphResponse:
        inbound, outbound = await fetch_identity_vectors(ctx)
        edges = await process_edge_metrics(ctx, inbound, outbound, namespace)
        nodes = build_node_list(edges, namespace)
        for node in nodes:
            node.stats = await stat_query(ctx, node.app, node.version, ctx.window, "inbound")

        response = GraphResponse(nodes=nodes, edges=edges, integrity=FULL)
        check_nan(response)
        logger.info("graph for namespace %r: %d nodes, %d edges", namespace, len(nodes), len(edges))
        return response


class PartialThenFullStrategy(CorrelationStrategy):
    name = "async"

    async def assemble(self, ctx: QueryContext, namespace: str = "",
                       on_partial: PartialCallback | None = None) -> GraphResponse:
        baskets = {
            direction: asyncio.create_task(direction_stat_query(ctx, direction, ctx.window))
            for direction in ("inbound", "outbound")
        }
        try:
            inbound, outbound = await fetch_identity_vectors(ctx)
            edges = await process_edge_metrics(ctx, inbound, outbound, namespace, with_stats=False)
            nodes = build_node_list(edges, namespace)

            partial = GraphResponse(nodes=nodes, edges=edges, integrity=PARTIAL)
            check_nan(partial)
            if on_partial is not None:
                await on_partial(partial)

            # either direction may finish first
            await asyncio.wait(baskets.values())
            inbound_stats = baskets["inbound"].result()
            outbound_stats = baskets["outbound"].result()
        finally:
            for task in baskets.values():
                task.cancel()
            await asyncio.gather(*baskets.values(), return_exceptions=True)

        # the partial response keeps its empty stats
        full = GraphResponse(
            nodes=attach_inbound_stats(copy.deepcopy(nodes), inbound_stats),
            edges=attach_outbound_stats(copy.deepcopy(edges), outbound_stats),
            integrity=FULL,
        )
        check_nan(full)
        logger.info("graph for namespace %r: %d nodes, %d edges (async)", namespace, len(nodes), len(edges))
        return full


STRATEGIES: dict[str, type[CorrelationStrategy]] = {
    "full": FullStrategy,
    "async": PartialThenFullStrategy,
    "partial": PartialThenFullStrategy,
}


def get_strategy(name: str = "full") -> CorrelationStrategy:
    try:
        return STRATEGIES[name or "full"]()
    except KeyError:
        raise ValueError(f"unknown correlation strategy: {name!r}") from None


async def assemble_graph(ctx: QueryContext, namespace: str = "", strategy: str = "full",
                         timeout: float = 60.0, on_partial: PartialCallback | None = None) -> GraphResponse:
    """Run ``strategy`` under a deadline; on expiry every sub-task is cancelled."""
    try:
        return await asyncio.wait_for(get_strategy(strategy).assemble(ctx, namespace, on_partial), timeout)
    except asyncio.TimeoutError:
        raise GraphTimeoutError(
            f"graph for namespace {namespace!r} not ready after {timeout}s"
        ) from None
