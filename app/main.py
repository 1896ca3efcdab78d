# app/main.py
from __future__ import annotations

"""
# VideoDrop API - Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the one-time video sharing backend.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**:
  1) request id → 2) CORS → 3) gzip → 4) rate limits → 5) strip `Server` header.
- Centralized exception handling: every error is a problem+json body.
- The container (DB engine, S3 client, services) is built in the lifespan,
  never at import; tests pre-seed `app.state.container` with fakes.

## Probes
- `/healthz` - liveness (process up).
- `/readyz` - readiness (metadata store reachable).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

# -- Logging bootstrap (Loguru + stdlib intercept) ----------------------------
from app.core import logger as _logsetup  # noqa: F401

from app.api.v1.routers import router as api_v1_router
from app.core.config import Settings, settings as default_settings
from app.core.container import build_container
from app.core.exception_handlers import (
    app_exception_handler,
    global_exception_handler,
    http_exception_handler,
    rate_limit_exceeded_handler,
    validation_exception_handler,
)
from app.core.exceptions import AppException
from app.core.limiter import install_rate_limiter
from app.middleware.request_id import RequestIDMiddleware
from app.security_headers import configure_cors
from app.services.reaper_service import start_reaper_scheduler

logger = logging.getLogger("app")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup:
        - Build the container unless one was pre-seeded on `app.state`.
        - Optionally start the in-process reaper job.

    Shutdown:
        - Stop the scheduler, dispose the DB engine.
    """
    cfg: Settings = app.state.settings
    container = getattr(app.state, "container", None)
    if container is None:
        container = build_container(cfg)
        app.state.container = container
    logger.info("✅ %s starting up", cfg.PROJECT_NAME)

    scheduler = None
    if cfg.REAPER_SCHEDULER_ENABLED:
        scheduler = start_reaper_scheduler(container.reaper, interval_minutes=cfg.REAPER_INTERVAL_MINUTES)

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("🛑 Reaper scheduler stopped")
        await container.close()
        logger.info("🛑 %s shutting down", cfg.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: fully wired application with middleware, exception handlers,
        routers, and health/readiness endpoints.
    """
    cfg = cfg or default_settings
    docs_url = "/docs" if cfg.ENABLE_DOCS else None
    redoc_url = "/redoc" if cfg.ENABLE_DOCS else None
    openapi_url = "/openapi.json" if cfg.ENABLE_DOCS else None

    app = FastAPI(
        title=cfg.PROJECT_NAME,
        version=cfg.VERSION,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # ── Middlewares (order matters) ─────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    configure_cors(app, cfg.BACKEND_CORS_ORIGINS)
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    install_rate_limiter(app)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

    @app.middleware("http")
    async def _strip_server_header(request: Request, call_next: Callable) -> Response:
        """Remove the `Server` header to avoid leaking implementation details."""
        response: Response = await call_next(request)
        if "server" in response.headers:
            del response.headers["server"]
        return response

    # ── Exception handlers ──────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)  # type: ignore[arg-type]

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=cfg.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe. No external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz(request: Request) -> JSONResponse:
        """Readiness probe: 200 when the metadata store answers, 503 otherwise."""
        container = getattr(request.app.state, "container", None)
        db_ok = bool(container is not None and await container.ready())
        return JSONResponse(
            {"ready": db_ok, "checks": {"metadata": db_ok}},
            status_code=200 if db_ok else 503,
        )

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        body = {"name": cfg.PROJECT_NAME, "docs": app.docs_url or "", "version": cfg.VERSION}
        return JSONResponse(body)

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn app.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
