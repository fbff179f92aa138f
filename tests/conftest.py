# tests/conftest.py
# Shared pytest fixtures

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from graph.context import QueryContext
from graph.models import VECTOR, QueryResult, Sample


class FakeQueryClient:
    """In-memory stand-in for the Prometheus client.

    ``on(fragment, result, delay)`` registers an answer for every expression
    containing ``fragment``; the first registered match wins. ``result`` may
    be a QueryResult, a list of Samples or an exception to raise. Unmatched
    expressions return an empty vector.
    """

    def __init__(self):
        self.routes: list[tuple[str, object, float]] = []
        self.calls: list[str] = []
        self.cancelled: list[str] = []

    def on(self, fragment: str, result, delay: float = 0.0) -> "FakeQueryClient":
        self.routes.append((fragment, result, delay))
        return self

    async def query(self, expr, ts=None):
        self.calls.append(expr)
        for fragment, result, delay in self.routes:
            if fragment not in expr:
                continue
            if delay:
                try:
                    await asyncio.sleep(delay)
                except asyncio.CancelledError:
                    self.cancelled.append(expr)
                    raise
            if isinstance(result, BaseException):
                raise result
            if isinstance(result, QueryResult):
                return result
            return QueryResult(VECTOR, list(result))
        return QueryResult(VECTOR, [])

    def calls_matching(self, fragment: str) -> list[str]:
        return [c for c in self.calls if fragment in c]


@pytest.fixture
def fake_client():
    return FakeQueryClient()


@pytest.fixture
def ctx(fake_client):
    """QueryContext over the fake client with the default 30s window."""
    return QueryContext(client=fake_client, window="30s")


@pytest.fixture
def inbound_samples():
    """svc-b (ns1) called from ns2 and from ns1; one sample without client_id."""
    return [
        Sample(metric={"namespace": "ns1", "app": "svc-b", "version": "v1",
                       "deployment": "svc-b", "client_id": "default.ns2.serviceaccount.identity.linkerd.cluster.local"},
               value=4.0),
        Sample(metric={"namespace": "ns1", "app": "svc-c", "version": "v2",
                       "deployment": "svc-c", "client_id": "default.ns1.serviceaccount.identity.linkerd.cluster.local"},
               value=2.0),
        Sample(metric={"namespace": "ns1", "app": "svc-c", "version": "v2", "deployment": "svc-c"},
               value=1.0),
    ]


@pytest.fixture
def outbound_samples():
    """svc-a (ns2) -> svc-b, svc-b (ns1) -> svc-c, and an unmatched call."""
    return [
        Sample(metric={"namespace": "ns2", "app": "svc-a", "version": "v1",
                       "dst_namespace": "ns1", "dst_deployment": "svc-b"}, value=4.0),
        Sample(metric={"namespace": "ns1", "app": "svc-b", "version": "v1",
                       "dst_namespace": "ns1", "dst_deployment": "svc-c"}, value=2.0),
        Sample(metric={"namespace": "ns3", "app": "svc-x", "version": "v1",
                       "dst_namespace": "ns3", "dst_deployment": "svc-y"}, value=1.0),
    ]
