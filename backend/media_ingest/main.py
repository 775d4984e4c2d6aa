"""
D4DHub Media Ingest - FastAPI Application Entry Point.

Wires the ingest pipeline into an HTTP service:

- Structured logging configured once at startup
- CORS middleware for the web frontend
- Request logging and timing middleware
- /api/v1/ingest router
- Root, health and readiness endpoints

Usage:
    # Run with uvicorn directly
    uvicorn media_ingest.main:app --host 0.0.0.0 --port 8000 --reload

    # Run as Python module
    python -m media_ingest.main
"""

import logging
import time

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from media_ingest import __app_name__, __version__
from media_ingest.api.v1 import api_router
from media_ingest.config import get_settings
from media_ingest.services.media_processing_service import FFprobeProber
from media_ingest.utils.logger import setup_logging


logger = logging.getLogger(__name__)

# Status codes >= 400 are logged at WARNING
HTTP_ERROR_THRESHOLD = 400


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Configure logging and check the media prober on startup.

    A missing ffprobe binary does not stop the service: video uploads are
    still accepted with an estimated duration.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(
        "%s %s starting (env=%s, host=%s:%s)",
        settings.app_name,
        __version__,
        settings.app_env,
        settings.host,
        settings.port,
    )

    prober = FFprobeProber.from_settings(settings)
    if prober.is_available():
        logger.info("Media prober found: %s", settings.ffprobe_path)
    else:
        logger.warning(
            "Media prober %r not found on PATH; video durations will be estimated",
            settings.ffprobe_path,
        )

    yield

    logger.info("%s shutting down", settings.app_name)


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="D4DHub Media Ingest API",
    description=(
        "Validates, scans and processes user-uploaded images and videos before "
        "they are stored: filename sanitization, magic-byte type checks, "
        "active-content scanning, EXIF stripping and video duration probing."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """Log each request and add X-Process-Time / X-Request-ID headers."""
    request_id = f"{time.time_ns()}"
    start_time = time.perf_counter()

    logger.debug("Request started: %s %s [Request-ID: %s]", request.method, request.url.path, request_id)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed: %s %s [Request-ID: %s]",
            request.method,
            request.url.path,
            request_id,
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [Status: %s] [Time: %sms] [Request-ID: %s]",
        request.method,
        request.url.path,
        response.status_code,
        process_time_ms,
        request_id,
    )
    return response


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api/v1")


# =============================================================================
# Core Endpoints
# =============================================================================


@app.get("/", tags=["root"], summary="API Root")
async def root() -> dict[str, Any]:
    """Service name, version and endpoint map."""
    return {
        "name": __app_name__,
        "version": __version__,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "api_prefix": "/api/v1",
        "endpoints": {
            "ingest": "/api/v1/ingest/{category}",
        },
        "categories": ["image", "short", "long"],
    }


@app.get("/health", tags=["health"], summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Liveness probe for load balancers and container orchestrators."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": __app_name__,
    }


@app.get("/ready", tags=["health"], summary="Readiness Check")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness probe.

    The service is always ready to accept uploads; ``checks.ffprobe`` reports
    whether video durations will be probed or estimated.
    """
    settings = get_settings()
    ffprobe_ok = FFprobeProber.from_settings(settings).is_available()
    return {
        "ready": True,
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": {
            "ffprobe": "available" if ffprobe_ok else "missing",
        },
    }


if __name__ == "__main__":
    uvicorn.run(
        "media_ingest.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
    )
