# promql/client.py
"""Prometheus HTTP API client.

The graph pipeline only depends on the ``QueryClient`` protocol; tests plug
in their own implementation.
"""

import asyncio
import logging
from datetime import datetime
from typing import Protocol

import requests

from core.errors import QueryError
from graph.models import MATRIX, SCALAR, STRING, VECTOR, QueryResult, Sample

logger = logging.getLogger(__name__)


class QueryClient(Protocol):
    async def query(self, expr: str, ts: datetime | None = None) -> QueryResult:
        ...


def parse_result(data: dict, warnings: list[str] | None = None) -> QueryResult:
    """Convert the ``data`` object of an instant-query response."""
    result_type = data.get("resultType", "")
    raw = data.get("result")
    warns = tuple(warnings or ())

    if result_type == VECTOR:
        samples = [
            Sample(metric=dict(item.get("metric", {})),
                   value=float(item["value"][1]),
                   timestamp=float(item["value"][0]))
            for item in raw or []
        ]
        return QueryResult(VECTOR, samples, warns)
    if result_type == SCALAR:
        return QueryResult(SCALAR, float(raw[1]), warns)
    if result_type == STRING:
        return QueryResult(STRING, raw[1], warns)
    if result_type == MATRIX:
        series = [
            (dict(item.get("metric", {})), [(float(ts), float(v)) for ts, v in item.get("values", [])])
            for item in raw or []
        ]
        return QueryResult(MATRIX, series, warns)
    raise QueryError(f"unknown query result type: {result_type!r}")


class PrometheusClient:
    """Instant queries against ``{url}/api/v1/query``.

    ``requests`` is blocking, so every call runs in a worker thread; the
    client holds no mutable state and is safe to share between tasks.
    """

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url.rstrip("/")
        self.timeout = timeout

    def query_sync(self, expr: str, ts: datetime | None = None) -> QueryResult:
        params: dict[str, str] = {"query": expr}
        if ts is not None:
            params["time"] = f"{ts.timestamp():.3f}"
        try:
            response = requests.get(
                f"{self.url}/api/v1/query",
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise QueryError(f"error querying prometheus: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise QueryError(
                f"error querying prometheus: HTTP {response.status_code}, non-JSON body"
            ) from e

        if body.get("status") != "success":
            raise QueryError(
                f"error querying prometheus: {body.get('errorType', 'error')}: "
                f"{body.get('error', 'HTTP %d' % response.status_code)}"
            )
        return parse_result(body.get("data") or {}, body.get("warnings"))

    async def query(self, expr: str, ts: datetime | None = None) -> QueryResult:
        return await asyncio.to_thread(self.query_sync, expr, ts)
