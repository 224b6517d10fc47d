"""
app/main.py – FastAPI application factory for the Ad Copy API.

Features
────────
• Structured logging via structlog
• Request-ID middleware (X-Request-ID header)
• Basic rate limiting (slowapi, 30 req/min per IP by default)
• OpenAPI docs enriched with examples
• Clean startup/shutdown lifecycle
"""
from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.routes.ad_copy import router as ad_copy_router
from app.routes.health import router as health_router
from app.routes.keywords import router as keywords_router
from app.routes.records import router as records_router
from app.services.semrush import close_semrush_client

# ── Logging setup ─────────────────────────────────────────────────────────────


def _configure_logging() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer()
            if settings.debug
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
    )
    # Also configure standard logging to go through structlog
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    # httpx logs full request URLs at INFO; the Semrush key is a query parameter
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()
logger = structlog.get_logger(__name__)

# ── Rate limiter ──────────────────────────────────────────────────────────────

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.rate_limit_enabled,
)

# ── Request-ID middleware ─────────────────────────────────────────────────────


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attaches a unique request ID to each incoming request.
    Reads X-Request-ID from the client if present, otherwise generates one.
    Echoes the request ID in the response header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)

        logger.info(
            "request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        structlog.contextvars.clear_contextvars()
        return response


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "Ad Copy API starting",
        name=settings.app_name,
        version=settings.app_version,
        planning_model=settings.gemini_planning_model,
        generation_model=settings.gemini_generation_model,
        storage_backend=settings.storage_backend,
    )
    yield
    close_semrush_client()
    logger.info("Ad Copy API shutting down")


# ── Application factory ───────────────────────────────────────────────────────


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "**Ad Copy API** – Google Ads responsive search ad copy generator.\n\n"
            "Generates headlines, descriptions and display paths via Google Gemini, "
            "grounded in Semrush keyword data, and guarantees every asset fits "
            "its Google Ads character limits.\n\n"
            "## Workflow\n"
            "1. **Research** – optional Semrush keyword research\n"
            "2. **Planning** – copy strategy from the planning model\n"
            "3. **Generation** – candidate assets from the generation model\n"
            "4. **Normalization** – exactly 11 headlines (25–30), 4 descriptions (85–90), 2 paths\n"
            "5. **Review** – rule-based Google Ads policy checks\n"
        ),
        openapi_tags=[
            {
                "name": "Ad Copy",
                "description": "Generate, normalize and validate ad copy.",
            },
            {
                "name": "Keywords",
                "description": "Semrush-backed keyword research.",
            },
            {
                "name": "Records",
                "description": "Clients, campaigns, ad groups, keywords and ads.",
            },
            {
                "name": "Health",
                "description": "Liveness and readiness probes.",
            },
        ],
        license_info={"name": "Proprietary"},
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ── Middleware (order matters – outermost first) ───────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SlowAPIMiddleware)

    # ── Rate limit error handler ──────────────────────────────────────────────
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(ad_copy_router)
    app.include_router(keywords_router)
    app.include_router(records_router)

    return app


app = create_app()
