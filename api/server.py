# api/server.py
# FastAPI-сервер meshscope

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from api.routes.cluster_routes import router as cluster_router
from api.routes.graph_routes import router as graph_router
from api.websocket import router as ws_router
from core.config import VERSION, settings
from core.errors import MeshScopeError
from core.logging import RequestLoggingMiddleware, setup_logging
from core.security_headers import SecurityHeadersMiddleware
from promql.client import PrometheusClient

API_VERSIONS = ["v0"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    app.state.start_time = time.time()
    logger.info("running version %s against %s", VERSION, settings.prometheus.url)
    yield


app = FastAPI(title="meshscope API", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.state.query_client = PrometheusClient(settings.prometheus.url, settings.prometheus.query_timeout)

app.include_router(graph_router)
app.include_router(cluster_router)
app.include_router(ws_router)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@app.exception_handler(MeshScopeError)
async def meshscope_error(request: Request, exc: MeshScopeError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/")
@app.get("/hello")
async def hello():
    return PlainTextResponse("Hello there! \n")


@app.get("/api/version")
async def api_version():
    return {"version": API_VERSIONS}


@app.get("/api/health")
async def health():
    now = time.time()
    uptime = now - getattr(app.state, "start_time", now)
    return {
        "status": "ok",
        "version": app.version,
        "uptime_seconds": round(uptime, 1),
        "prometheus": settings.prometheus.url,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
