"""Structured JSON logging with request context propagation."""

import contextvars
import json
import logging
import os
import re
import time
import uuid
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

request_ctx: contextvars.ContextVar[dict] = contextvars.ContextVar("request_ctx", default={})

_SECRET_RE = re.compile(r"(token|password|secret|authorization)([\s=:]+)\S+", re.IGNORECASE)
_DEV = os.getenv("MESHSCOPE_ENVIRONMENT", "development") == "development"

logger = logging.getLogger("meshscope.access")


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = request_ctx.get()
        msg = _SECRET_RE.sub(r"\1\2***", record.getMessage())
        obj = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "message": msg,
            "logger": record.name,
            "request_id": ctx.get("request_id"),
            "path": ctx.get("path"),
        }
        if hasattr(record, "duration_ms"):
            obj["duration_ms"] = record.duration_ms
        if record.exc_info and record.exc_info[0]:
            obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(obj, indent=2 if _DEV else None, default=str)


def setup_logging(level: str | None = None) -> None:
    """Configure root logger with JSON handler."""
    lvl = level or os.getenv("MESHSCOPE_LOG_LEVEL", "INFO")
    root = logging.getLogger()
    root.setLevel(getattr(logging, lvl.upper(), logging.INFO))
    if not any(isinstance(h, logging.StreamHandler) and isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign request_id, propagate context, add X-Request-ID header."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        ctx = {"request_id": rid, "path": request.url.path}
        request.state.request_id = rid
        token = request_ctx.set(ctx)
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "%s %s -> %d", request.method, request.url.path, response.status_code,
                extra={"duration_ms": round((time.perf_counter() - t0) * 1000, 1)},
            )
        finally:
            request_ctx.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
