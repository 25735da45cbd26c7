# main.py
from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse

# Import logging utilities early so that the logger configuration is
# applied before any other modules emit log messages.
from dinemore.logging_config import log_event, logger

from dinemore.core.errors import ApiError, DineMoreError
from dinemore.profiles import ProfileRegistry
from dinemore.routes.activity import router as activity_router
from dinemore.routes.auth import router as auth_router
from dinemore.routes.branches import router as branches_router


def create_app(registry: Optional[ProfileRegistry] = None) -> FastAPI:
    """Build the companion application.

    :param registry: profile registry to serve; a fresh one built from
        the environment settings is used when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.profiles = registry or ProfileRegistry()
        try:
            yield
        finally:
            app.state.profiles.close()

    app = FastAPI(title="DineMore companion", default_response_class=ORJSONResponse, lifespan=lifespan)

    app.include_router(auth_router)
    app.include_router(branches_router)
    app.include_router(activity_router)

    @app.exception_handler(DineMoreError)
    async def handle_dinemore_error(request: Request, exc: DineMoreError):
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        log_event(level, "request_failed", path=request.url.path, error=type(exc).__name__, detail=str(exc))
        detail = exc.text if isinstance(exc, ApiError) else str(exc)
        return ORJSONResponse(status_code=exc.status_code, content={"detail": detail, "error": str(exc)})

    @app.exception_handler(httpx.HTTPError)
    async def handle_transport_error(request: Request, exc: httpx.HTTPError):
        log_event(logging.ERROR, "upstream_unreachable", path=request.url.path, detail=str(exc))
        return ORJSONResponse(status_code=502, content={"detail": "DineMore API unreachable"})

    # Request logging: path, method, status and processing time of every
    # incoming request at INFO level.
    @app.middleware("http")  # type: ignore[misc]
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        logger.info(json.dumps({
            "event": "http_request",
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }))
        return response

    return app


app = create_app()
