# graph/correlator.py
"""Join inbound and outbound identity samples into directed edges.

Inbound samples know who called them through ``client_id``
(``<id>.<namespace>.<serviceaccount>.<cluster-domain>``); outbound samples
know which resource they called through ``dst_<resource>``. Both sides are
keyed as ``"<resource>.<caller namespace>"`` and matched on that key.
"""

import logging

from graph.context import QueryContext
from graph.models import Edge, Sample
from graph.stats import stat_query

logger = logging.getLogger(__name__)


def _caller_namespace(client_id: str) -> str | None:
    parts = client_id.split(".")
    if len(parts) < 2:
        return None
    return parts[1]


def build_destination_index(inbound: list[Sample], resource_type: str = "deployment") -> dict[str, dict[str, str]]:
    """join key -> label set of the inbound (destination side) sample."""
    index: dict[str, dict[str, str]] = {}
    for sample in inbound:
        # without a client_id the caller cannot be attributed
        client_id = sample.label("client_id")
        caller_ns = _caller_namespace(client_id) if client_id else None
        if caller_ns is None:
            logger.debug("dropped metric: %s", sample.metric)
            continue
        key = f"{sample.label(resource_type)}.{caller_ns}"
        index[key] = sample.metric
    return index


def build_source_index(outbound: list[Sample], resource_type: str = "deployment") -> dict[str, list[dict[str, str]]]:
    """join key -> label sets of all outbound (source side) samples."""
    index: dict[str, list[dict[str, str]]] = {}
    for sample in outbound:
        key = f"{sample.label('dst_' + resource_type)}.{sample.label('namespace')}"
        index.setdefault(key, []).append(sample.metric)
    return index


def correlate(inbound: list[Sample], outbound: list[Sample], namespace: str = "",
              resource_type: str = "deployment") -> list[Edge]:
    """Edges for every outbound sample that has a matching inbound sample.

    With a non-empty ``namespace`` an edge is kept only when its source or
    destination lives there. Edges come out with empty stats.
    """
    dst_index = build_destination_index(inbound, resource_type)
    src_index = build_source_index(outbound, resource_type)

    edges: list[Edge] = []
    for key, sources in src_index.items():
        dst = dst_index.get(key)
        if dst is None:
            continue
        dst_namespace = dst.get("namespace", "")
        for src in sources:
            src_namespace = src.get("namespace", "")
            if namespace and src_namespace != namespace and dst_namespace != namespace:
                continue
            # TODO: drop edges whose to_app is empty once the dashboard stops rendering them
            edges.append(Edge(
                from_namespace=src_namespace,
                from_app=src.get("app", ""),
                from_version=src.get("version", ""),
                to_namespace=dst_namespace,
                to_app=dst.get("app", ""),
                to_version=dst.get("version", ""),
            ))
    logger.debug("correlated %d edges from %d inbound / %d outbound samples",
                 len(edges), len(inbound), len(outbound))
    return edges


async def process_edge_metrics(ctx: QueryContext, inbound: list[Sample], outbound: list[Sample],
                               namespace: str = "", with_stats: bool = True) -> list[Edge]:
    """Correlate edges and, unless ``with_stats`` is off, attach outbound stats.

    A failing stats query aborts the whole correlation.
    """
    edges = correlate(inbound, outbound, namespace, ctx.resource_type)
    if not with_stats:
        return edges
    for edge in edges:
        edge.stats = await stat_query(ctx, edge.from_app, edge.from_version, ctx.window, "outbound")
    return edges
