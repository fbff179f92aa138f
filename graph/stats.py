# graph/stats.py
"""Latency / request-rate / success-rate baskets for entities and directions.

One basket is five queries: three latency quantiles fanned out as
concurrent tasks and collected in arrival order, followed by the request
rate and success rate queries.
"""

import asyncio
import logging

from graph.context import QueryContext
from graph.models import Edge, Node, Sample
from promql.queries import (
    DIRECTION_LATENCY_GROUPING,
    DIRECTION_RATE_GROUPING,
    ENTITY_GROUPING,
    METRIC_NAMES,
    QUANTILES,
    RPS,
    SUCCESS,
    label_selector,
    latency_query,
    request_rate_query,
    success_rate_query,
)

logger = logging.getLogger(__name__)

_QUANTILE_NAMES = dict(QUANTILES)


async def _quantile(ctx: QueryContext, quantile: str, labels: str, window: str, by: str):
    """Returns ``(quantile, samples, error)``; never raises a query error."""
    try:
        samples = await ctx.vector(latency_query(quantile, labels, window, by))
    except Exception as e:
        return quantile, None, e
    return quantile, samples, None


async def collect_quantiles(ctx: QueryContext, labels: str, window: str,
                            by: str = ENTITY_GROUPING) -> dict[str, list[Sample]]:
    """Fan out the three quantile queries and fan the results back in.

    Results are indexed by the quantile each task reports, not by spawn
    order. All three slots are drained before deciding; if any query
    failed the first error to arrive is raised.
    """
    tasks = [
        asyncio.create_task(_quantile(ctx, quantile, labels, window, by))
        for quantile, _ in QUANTILES
    ]
    result: dict[str, list[Sample]] = {}
    err: Exception | None = None
    try:
        for fut in asyncio.as_completed(tasks):
            quantile, samples, exc = await fut
            if exc is not None:
                logger.error("query failed with %s", exc)
                if err is None:
                    err = exc
                continue
            result[_QUANTILE_NAMES.get(quantile, quantile)] = samples
    finally:
        # no-op for finished tasks; stops the rest when we are cancelled
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    if err is not None:
        raise err
    return result


async def _basket(ctx: QueryContext, direction: str, window: str, app: str = "", version: str = "",
                  latency_by: str = ENTITY_GROUPING, rate_by: str = ENTITY_GROUPING) -> dict[str, list[Sample]]:
    labels = label_selector(direction, app, version)
    vectors = await collect_quantiles(ctx, labels, window, latency_by)
    vectors[RPS] = await ctx.vector(request_rate_query(labels, window, rate_by))
    vectors[SUCCESS] = await ctx.vector(success_rate_query(direction, window, app, version, rate_by))
    return vectors


def _first_value(samples: list[Sample], metric: str, app: str, version: str) -> float:
    # first returned series wins
    if not samples:
        return 0.0
    sample = samples[0]
    if not sample.is_finite():
        logger.info("Found %s value for metric: %s, with app %s & version: %s", sample.value, metric, app, version)
        return 0.0
    return sample.value


async def stat_query(ctx: QueryContext, app: str, version: str, window: str, direction: str) -> dict[str, float]:
    """Stats map for one (app, version) in one traffic direction.

    An empty ``version`` drops the version clause from every selector.
    """
    window = window or ctx.window
    vectors = await _basket(ctx, direction, window, app, version)
    return {
        metric: _first_value(vectors.get(metric) or [], metric, app, version)
        for metric in METRIC_NAMES
    }


async def direction_stat_query(ctx: QueryContext, direction: str, window: str = "") -> dict[str, list[Sample]]:
    """Bulk basket for a whole direction, grouped by app and version.

    Metrics without any sample map to an empty list.
    """
    window = window or ctx.window
    vectors = await _basket(
        ctx, direction, window,
        latency_by=DIRECTION_LATENCY_GROUPING,
        rate_by=DIRECTION_RATE_GROUPING,
    )
    logger.debug("direction %s stats: %s", direction,
                 {metric: len(samples) for metric, samples in vectors.items()})
    return vectors


def get_metrics(app: str, version: str, stats: dict[str, list[Sample]]) -> dict[str, float]:
    """Pick the stats of one (app, version) out of a bulk basket."""
    result: dict[str, float] = {}
    for metric in METRIC_NAMES:
        result[metric] = 0.0
        for sample in stats.get(metric) or []:
            if "app" not in sample.metric or sample.metric["app"] != app:
                continue
            if "version" not in sample.metric or sample.metric["version"] != version:
                continue
            logger.debug("found %s for app: %s version: %s", metric, app, version)
            if not sample.is_finite():
                logger.info("Found %s value for metric: %s, with app %s & version: %s",
                            sample.value, metric, app, version)
            else:
                result[metric] = sample.value
            break
    return result


def attach_inbound_stats(nodes: list[Node], stats: dict[str, list[Sample]]) -> list[Node]:
    """Nodes receive the inbound stats of their (app, version)."""
    for node in nodes:
        node.stats = get_metrics(node.app, node.version, stats)
    return nodes


def attach_outbound_stats(edges: list[Edge], stats: dict[str, list[Sample]]) -> list[Edge]:
    """Edges receive the outbound stats of their source (app, version)."""
    for edge in edges:
        edge.stats = get_metrics(edge.from_app, edge.from_version, stats)
    return edges
