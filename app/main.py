from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from app.core.config import Settings, settings as default_settings
from app.core.errors import error_body
from app.core.redis import connect_redis
from app.db.store import StoreError, SubmissionStore
from app.gateway.gemini import GatewayConfig, GatewayError, GatewayNotConfigured, GeminiGateway
from app.utils.stats_cache import StatsCache

from app.modules.submissions.router import router as submissions_router
from app.modules.admin.router import router as admin_router
from app.modules.analysis.router import router as analysis_router


logger = logging.getLogger("crop_advisory")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors()[:5]:
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SubmissionStore] = None,
    gateway: Optional[GeminiGateway] = None,
    stats_cache: Optional[StatsCache] = None,
) -> FastAPI:
    """Build the app. Collaborators are created once here and kept on app.state."""
    settings = settings or default_settings
    logger.setLevel((settings.LOG_LEVEL or "INFO").upper())

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.store = store or SubmissionStore(settings.DATA_FILE)
    app.state.gateway = gateway or GeminiGateway(GatewayConfig.from_settings(settings))
    app.state.stats_cache = stats_cache or StatsCache(
        connect_redis(settings.REDIS_URL), settings.STATS_CACHE_TTL_SECONDS
    )
    app.state.store.add_listener(app.state.stats_cache.invalidate)

    # CORS (Access-Control-Allow-*) - configurable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    )

    # Compression for JSON (history lists carry full analyses)
    app.add_middleware(GZipMiddleware, minimum_size=800)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        resp = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        resp.headers["X-Process-Time-ms"] = f"{elapsed:.2f}"
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, resp.status_code, elapsed)
        return resp

    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content=error_body(_validation_message(exc)))

    # Routers map these with endpoint-specific messages; these catch the rest.
    @app.exception_handler(StoreError)
    async def store_exc_handler(request: Request, exc: StoreError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content=error_body("Storage error"))

    @app.exception_handler(GatewayError)
    async def gateway_exc_handler(request: Request, exc: GatewayError):
        if isinstance(exc, GatewayNotConfigured):
            return JSONResponse(status_code=503, content=error_body("Analysis service is not configured"))
        logger.error("Model gateway failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content=error_body("Analysis service error"))

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception", exc_info=exc)
        return JSONResponse(status_code=500, content=error_body("Internal Server Error"))

    app.include_router(submissions_router)
    app.include_router(admin_router)
    app.include_router(analysis_router)

    @app.get("/api/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # Built client bundle; mounted last so /api routes win.
    if settings.STATIC_DIR and os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="client")

    return app


app = create_app()
