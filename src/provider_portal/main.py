"""
Provider Portal Service: application entry point.

This module wires together:
- FastAPI application factory with production-grade middleware
- Structured logging (structlog)
- CORS, security-headers middleware
- Global exception handlers
- Lifespan: DB health check on startup, graceful shutdown
"""
from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import AsyncGenerator, Callable, Awaitable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .api.v1 import router as v1_router
from .core.config import get_settings
from .core.exceptions import AppException
from .core.responses import ErrorDetail, ErrorResponse, ResponseMeta
from .db.session import close_db, get_db_manager


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging() -> None:
    """Configure structured logging via structlog."""
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard-library loggers (uvicorn, SQLAlchemy, the storage service)
    # share the configured level.
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=log_level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Security-headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject security-hardening HTTP response headers on every response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = (
            "max-age=63072000; includeSubDomains; preload"
        )
        _settings = get_settings()
        docs_paths = {"/docs", "/redoc", "/openapi.json"}
        if request.url.path in docs_paths and _settings.APP_ENV != "production":
            # Swagger UI loads JS/CSS from jsdelivr CDN and favicon from fastapi.tiangolo.com
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com; "
                "frame-ancestors 'none'; "
                "base-uri 'none'"
            )
        elif request.url.path.startswith(f"{_settings.BLOB_BASE_URL}/"):
            # Blob responses are images displayed by the portal pages.
            response.headers["Content-Security-Policy"] = "default-src 'none'; img-src 'self'"
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
            )
        return response


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response pair.

    An incoming ``X-Request-ID`` header is honoured. The ID is stored in
    ``request.state.request_id``, echoed in the ``X-Request-ID`` response
    header and bound to the structlog context for the request's log lines.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def _request_meta(request: Request) -> ResponseMeta:
    return ResponseMeta(request_id=getattr(request.state, "request_id", None))


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    Startup:
        1. Configure logging.
        2. Verify database connectivity (schema is managed by Alembic).

    Shutdown:
        1. Close all database connections.
    """
    settings = get_settings()
    logger = structlog.get_logger()

    # ---- Startup ----
    configure_logging()

    logger.info(
        "Starting application",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        storage_backend=settings.STORAGE_BACKEND,
    )

    db_manager = get_db_manager()

    # Run `alembic upgrade head` before the first deployment and after every
    # schema change; tables are never created from here.
    db_health = await db_manager.health_check()
    logger.info("Database health check", result=db_health)

    logger.info("Application started successfully")

    yield

    # ---- Shutdown ----
    logger.info("Shutting down application")
    await close_db()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    tags_metadata = [
        {
            "name": "Health",
            "description": "Health checks: liveness, readiness, and comprehensive status.",
        },
        {
            "name": "Providers",
            "description": "Provider records, profile images and client review import.",
        },
        {
            "name": "Uploads",
            "description": "Presigned upload URLs for profile images.",
        },
        {
            "name": "Blob Storage",
            "description": "Signed upload target and file serving for local storage.",
        },
        {
            "name": "Notifications",
            "description": "Admin email when a provider completes onboarding.",
        },
    ]

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
# Provider Portal API

Backend for the provider onboarding portal.

| Feature | Description |
|---------|-------------|
| **Provider records** | Practice information, qualifications and profile images |
| **Direct uploads** | Presigned S3 (or signed local) URLs for headshot and gallery images |
| **Review import** | Client reviews from an .xls/.xlsx spreadsheet |
| **Notifications** | Admin email on provider signup |

All endpoints are versioned under `/api/v1/`.
        """,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        default_response_class=JSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
    )

    # ------------------------------------------------------------------
    # Middleware: first registered = outermost wrapper
    # ------------------------------------------------------------------
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(v1_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        payload: dict = {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "health": "/api/v1/health",
        }
        if settings.is_development:
            payload["docs"] = "/docs"
        return payload

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the application."""
    logger = structlog.get_logger()

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        logger.warning(
            "Application exception",
            error_code=exc.error_code,
            message=exc.message,
            path=str(request.url),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.error_code, message=exc.message, details=exc.details),
                meta=_request_meta(request),
            ).model_dump(mode='json'),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Validation error", errors=exc.errors(), path=str(request.url))
        validation_errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error=ErrorDetail(
                    code="VALIDATION_ERROR",
                    message="Request validation failed",
                    details={"validation_errors": validation_errors},
                ),
                meta=_request_meta(request),
            ).model_dump(mode='json'),
        )

    @app.exception_handler(Exception)
    async def _generic_exc(request: Request, exc: Exception) -> JSONResponse:
        settings = get_settings()
        logger.exception("Unhandled exception", error=str(exc), path=str(request.url))
        # Never expose internal details in production
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(code="INTERNAL_ERROR", message=message),
                meta=_request_meta(request),
            ).model_dump(mode='json'),
        )


# ---------------------------------------------------------------------------
# Module-level application instance (consumed by uvicorn / gunicorn)
# ---------------------------------------------------------------------------
app = create_application()
