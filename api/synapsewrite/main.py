"""
SynapseWrite API - AI article generation.

FastAPI application relaying language-model output to the browser, plus the
pass-through routes for search evidence, search-grounded generation,
WordPress export and payments.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from synapsewrite.config import settings
from synapsewrite.dependencies import build_services
from synapsewrite.errors import (
    ConfigurationError,
    RateLimited,
    SynapseWriteError,
    UpstreamUnavailable,
)
from synapsewrite.middleware.rate_limit import limiter
from synapsewrite.routers.export import router as export_router
from synapsewrite.routers.generate import router as generate_router
from synapsewrite.routers.payments import router as payments_router
from synapsewrite.routers.refresh import router as refresh_router
from synapsewrite.routers.stream import router as stream_router
from synapsewrite.routers.webhooks import router as webhooks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: build the shared HTTP client, rate limit stores and caches
    app.state.services = build_services(settings)
    if settings.logflare_enabled:
        logger.info("Forwarding events to Logflare source %s", settings.logflare_source_id)
    yield
    # Shutdown
    await app.state.services.aclose()


app = FastAPI(
    title="SynapseWrite API",
    description="Streams AI-generated articles and relays third-party integrations",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter state
app.state.limiter = limiter

# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
app.include_router(stream_router)
app.include_router(refresh_router)
app.include_router(generate_router)
app.include_router(export_router)
app.include_router(payments_router)
app.include_router(webhooks_router)


# --- Middleware ---


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add a unique request ID to each request."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# --- Exception Handlers ---


def _sanitize_error_detail(error: dict[str, Any]) -> dict[str, Any]:
    """Sanitize Pydantic error detail to be JSON-serializable."""
    sanitized = {}
    for key, value in error.items():
        if key == "ctx":
            # Context may contain non-serializable objects like ValueError
            sanitized[key] = {k: str(v) for k, v in value.items()} if isinstance(value, dict) else str(value)
        elif key == "loc":
            sanitized[key] = [str(loc) for loc in value]
        else:
            sanitized[key] = value
    return sanitized


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report body validation errors as 400 with the standard envelope."""
    errors = [_sanitize_error_detail(e) for e in exc.errors()]
    if errors:
        first_error = errors[0]
        # Drop the leading "body" segment so the message names the field
        loc = [part for part in first_error.get("loc", []) if part != "body"]
        field = ".".join(loc)
        msg = first_error.get("msg", "Validation error")
        message = f"{field}: {msg}" if field else msg
    else:
        message = "Validation error"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "detail": errors},
    )


@app.exception_handler(SynapseWriteError)
async def synapsewrite_exception_handler(
    request: Request, exc: SynapseWriteError
) -> JSONResponse:
    """Turn domain errors into the ``{error, detail?}`` envelope."""
    request_id = getattr(request.state, "request_id", None)
    headers = None

    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error (request %s): %s", request_id, exc.message)
    elif isinstance(exc, UpstreamUnavailable):
        logger.warning(
            "Upstream failure (request %s, status %s): %s",
            request_id,
            exc.upstream_status,
            exc.message,
        )
    elif isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    else:
        logger.info("Rejected request %s: %s", request_id, exc.message)

    return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent error format."""
    request_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled error (request %s)", request_id, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# --- Health Check ---


@app.get("/api/v1/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.

    Returns 200 OK if the API is running.
    """
    return {"status": "healthy"}
