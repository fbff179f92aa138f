# tests/test_assembler.py
"""Graph assembly: strategies, NaN boundary check, deadlines."""

import asyncio

import pytest

from core.errors import GraphTimeoutError, NaNStatsError, QueryError, UnexpectedResultTypeError
from graph.assembler import (
    FullStrategy,
    PartialThenFullStrategy,
    assemble_graph,
    check_nan,
    get_strategy,
)
from graph.models import SCALAR, Edge, GraphResponse, Node, QueryResult, Sample

INBOUND_ID = "client_id)"
OUTBOUND_ID = "dst_deployment)"


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def graph_client(fake_client, inbound_samples, outbound_samples):
    """Fake backend with identity samples for ns1/ns2 and a few stats."""
    fake_client.on(INBOUND_ID, inbound_samples).on(OUTBOUND_ID, outbound_samples)
    return fake_client


class TestCheckNan:
    def test_rejects_node_nan(self):
        resp = GraphResponse(nodes=[Node("svc-a", "v1", "ns1", {"rps": float("nan"), "p50ms": 1.0})])
        with pytest.raises(NaNStatsError) as exc:
            check_nan(resp)
        assert exc.value.key == "rps"
        assert exc.value.app == "svc-a"
        assert "app:svc-a version:v1 ns:ns1" in str(exc.value)
        assert "[rps]" in str(exc.value)

    def test_rejects_edge_nan(self):
        edge = Edge("ns1", "svc-a", "v1", "ns2", "svc-b", "v1", {"p99ms": float("nan")})
        with pytest.raises(NaNStatsError, match="edge from"):
            check_nan(GraphResponse(edges=[edge]))

    def test_rejects_infinite_value(self):
        resp = GraphResponse(nodes=[Node("svc-a", "v1", "ns1", {"p99ms": float("inf")})])
        with pytest.raises(NaNStatsError, match="found inf inside node") as exc:
            check_nan(resp)
        assert exc.value.key == "p99ms"

    def test_clean_response_passes(self):
        check_nan(GraphResponse(nodes=[Node("a", "v1", "ns", {"rps": 0.0})]))


class TestFullStrategy:
    def test_full_graph(self, ctx, graph_client):
        graph_client.on('request_total{direction="inbound",app="svc-b"',
                        [Sample(metric={"app": "svc-b"}, value=2.5)])
        graph_client.on('histogram_quantile(0.99, sum(irate(response_latency_ms_bucket{direction="outbound",app="svc-a"',
                        [Sample(metric={"app": "svc-a"}, value=42.0)])
        resp = _run(FullStrategy().assemble(ctx, ""))
        assert resp.integrity == "full"
        assert [(n.app, n.namespace) for n in resp.nodes] == [("svc-a", "ns2"), ("svc-b", "ns1"), ("svc-c", "ns1")]
        assert len(resp.edges) == 2
        assert resp.edges[0].stats["p99ms"] == 42.0
        node_b = resp.nodes[1]
        assert node_b.stats["rps"] == 2.5
        assert all(set(n.stats) == {"p50ms", "p90ms", "p99ms", "rps", "successRate"} for n in resp.nodes)

    def test_namespace_scope(self, ctx, graph_client):
        resp = _run(FullStrategy().assemble(ctx, "ns2"))
        assert [(e.from_app, e.to_app) for e in resp.edges] == [("svc-a", "svc-b")]
        assert [n.app for n in resp.nodes] == ["svc-a"]

    def test_node_stats_failure(self, ctx, graph_client):
        graph_client.on('histogram_quantile(0.95, sum(irate(response_latency_ms_bucket{direction="inbound",app="svc-c"',
                        QueryError("boom"))
        with pytest.raises(QueryError):
            _run(FullStrategy().assemble(ctx, ""))

    def test_identity_not_a_vector(self, ctx, fake_client):
        fake_client.on(INBOUND_ID, QueryResult(SCALAR, 1.0))
        with pytest.raises(UnexpectedResultTypeError):
            _run(FullStrategy().assemble(ctx, ""))

    def test_empty_graph(self, ctx, fake_client):
        resp = _run(FullStrategy().assemble(ctx, "ns1"))
        assert resp.to_dict() == {"nodes": [], "edges": [], "integrity": "full"}


class TestPartialThenFull:
    def test_partial_then_full(self, ctx, graph_client):
        graph_client.on('histogram_quantile(0.5, sum(irate(response_latency_ms_bucket{direction="inbound"}',
                        [Sample(metric={"app": "svc-b", "version": "v1"}, value=8.0)], delay=0.02)
        graph_client.on('request_total{direction="outbound"}[30s])) by (app,version)',
                        [Sample(metric={"app": "svc-a", "version": "v1"}, value=6.0)])
        seen = []

        async def on_partial(partial):
            seen.append(partial.to_dict())

        resp = _run(PartialThenFullStrategy().assemble(ctx, "", on_partial))
        assert len(seen) == 1
        assert seen[0]["integrity"] == "partial"
        assert all(n["stats"] == {} for n in seen[0]["nodes"])
        assert all(e["stats"] == {} for e in seen[0]["edges"])

        assert resp.integrity == "full"
        by_app = {n.app: n for n in resp.nodes}
        assert by_app["svc-b"].stats["p50ms"] == 8.0
        assert by_app["svc-a"].stats["p50ms"] == 0.0
        assert resp.edges[0].stats["rps"] == 6.0
        assert resp.edges[1].stats["rps"] == 0.0

    def test_no_per_entity_queries(self, ctx, graph_client):
        _run(PartialThenFullStrategy().assemble(ctx, ""))
        assert all("app=" not in c for c in graph_client.calls)
        # 2 identity + 2 directions x 5 stats
        assert len(graph_client.calls) == 12

    def test_basket_failure(self, ctx, graph_client):
        graph_client.on('response_latency_ms_bucket{direction="outbound"}', QueryError("down"))
        with pytest.raises(QueryError):
            _run(PartialThenFullStrategy().assemble(ctx, ""))

    def test_identity_failure_cancels_baskets(self, ctx, fake_client):
        fake_client.on("histogram_quantile", [], delay=5)
        fake_client.on(INBOUND_ID, QueryError("identity down"))
        with pytest.raises(QueryError, match="identity down"):
            _run(PartialThenFullStrategy().assemble(ctx, ""))
        assert len(fake_client.cancelled) == 6


class TestAssembleGraph:
    def test_deadline(self, ctx, fake_client):
        fake_client.on(INBOUND_ID, [], delay=5)
        with pytest.raises(GraphTimeoutError):
            _run(assemble_graph(ctx, "ns1", "full", timeout=0.05))
        assert fake_client.cancelled

    def test_strategy_selection(self):
        assert isinstance(get_strategy("full"), FullStrategy)
        assert isinstance(get_strategy(""), FullStrategy)
        assert isinstance(get_strategy("async"), PartialThenFullStrategy)
        with pytest.raises(ValueError):
            get_strategy("bogus")

    def test_end_to_end(self, ctx, fake_client):
        fake_client.on(INBOUND_ID, [Sample(metric={"namespace": "ns1", "app": "svcB", "version": "v1",
                                                    "deployment": "svcB", "client_id": "c.ns2.sa.cluster.local"})])
        fake_client.on(OUTBOUND_ID, [Sample(metric={"namespace": "ns2", "dst_deployment": "svcB",
                                                     "app": "svcA", "version": "v1"})])
        out = _run(assemble_graph(ctx, "", "full")).to_dict()
        assert out["edges"] == [{
            "fromNamespace": "ns2", "fromApp": "svcA", "fromVersion": "v1",
            "toNamespace": "ns1", "toApp": "svcB", "toVersion": "v1",
            "stats": {"p50ms": 0.0, "p90ms": 0.0, "p99ms": 0.0, "rps": 0.0, "successRate": 0.0},
        }]
        assert [(n["app"], n["namespace"]) for n in out["nodes"]] == [("svcA", "ns2"), ("svcB", "ns1")]
        assert out["integrity"] == "full"
