from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from devtelemetry.api.routes.logs import router as logs_router
from devtelemetry.api.routes.metrics import router as metrics_router
from devtelemetry.api.routes.overview import router as overview_router
from devtelemetry.api.routes.profiler import router as profiler_router
from devtelemetry.core.config import settings
from devtelemetry.core.executors import create_tail_executor
from devtelemetry.core.logging import configure_logging
from devtelemetry.services.event_history import EventHistoryProvider

logger = logging.getLogger("devtelemetry")


# -------------------------
# Response helpers
# -------------------------
def ok(data: Any = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "error": None, "meta": meta or {}}


def fail(
    code: str,
    message: str,
    details: Optional[Any] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {"code": code, "message": message, "details": details},
        "meta": meta or {},
    }


# -------------------------
# App factory
# -------------------------
def create_app(
    history_provider: Optional[EventHistoryProvider] = None,
    sync_checks: Optional[Mapping[str, Callable[[], bool]]] = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        history_provider: the host's event history (request/profiling events).
            None disables the profiler, requests and errors sections.
        sync_checks: {category: callable} reporting synchronization anomalies
            of external collaborators; each True yields a recommendation.
    """
    app = FastAPI(
        title="Developer Telemetry API",
        version=settings.APP_VERSION,
        default_response_class=ORJSONResponse,
    )
    app.state.history_provider = history_provider
    app.state.sync_checks = dict(sync_checks or {})
    app.state.tail_executor = None

    # -------------------------
    # Middleware
    # -------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Request-id + timing
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()

        response = await call_next(request)

        response.headers["x-request-id"] = request_id
        response.headers["x-response-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
        return response

    # -------------------------
    # Routes
    # -------------------------
    @app.get("/health", response_class=ORJSONResponse)
    async def health():
        return ok({"status": "ok", "env": settings.ENV})

    app.include_router(logs_router, tags=["logs"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(profiler_router, tags=["profiler"])
    app.include_router(overview_router, tags=["overview"])

    # -------------------------
    # Error handling
    # -------------------------
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

        # Show minimal debug info only in dev
        details = None
        if settings.ENV == "dev":
            details = {"type": exc.__class__.__name__, "message": str(exc)}

        return ORJSONResponse(
            status_code=500,
            content=fail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred.",
                details=details,
            ),
        )

    # -------------------------
    # Startup / shutdown
    # -------------------------
    @app.on_event("startup")
    async def on_startup():
        configure_logging(settings.LOG_LEVEL)
        app.state.tail_executor = create_tail_executor(settings.TAIL_WORKERS)
        logger.info("Tailing logs from %s (%d workers)", settings.LOG_PATH, settings.TAIL_WORKERS)
        if history_provider is None:
            logger.warning("No event history provider; profiler, requests and errors will be empty.")

    @app.on_event("shutdown")
    async def on_shutdown():
        executor = app.state.tail_executor
        app.state.tail_executor = None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve `app` with uvicorn."""
    import uvicorn

    uvicorn.run("devtelemetry.main:app", host="0.0.0.0", port=8000)
