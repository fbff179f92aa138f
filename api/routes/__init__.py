# api/routes/__init__.py

import re

from fastapi import Request

from core.config import settings
from core.errors import InvalidWindowError
from promql.client import QueryClient

_WINDOW_RE = re.compile(r"([0-9]+(ms|s|m|h|d|w|y))+")


def get_query_client(request: Request) -> QueryClient:
    """FastAPI dependency — the metrics client installed on app.state."""
    return request.app.state.query_client


def resolve_window(window: str | None) -> str:
    """Requested window, or the configured default when none is given.

    Anything that is not a PromQL duration (``30s``, ``5m``, ``1h30m``)
    is rejected before it reaches a query template.
    """
    if not window:
        return settings.graph.window_default
    if not _WINDOW_RE.fullmatch(window):
        raise InvalidWindowError(f"invalid window {window!r}: expected a duration like 30s or 5m")
    return window
