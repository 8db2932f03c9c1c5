"""
Main FastAPI application entry point.
"""

import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from esmonitor.api.v1 import health
from esmonitor.core.config import settings
from esmonitor.monitoring.exceptions import CompositeFetchFailure, MonitoringError, UpstreamError
from esmonitor.monitoring.routes import router as monitor_router
from esmonitor.monitoring.service import close_monitoring_service, get_monitoring_service

# Route stdlib logging (used by structlog's LoggerFactory) to stdout
logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=settings.log.level.upper(),
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log.format == "json" else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting application", version=settings.app.app_version, env=settings.app.app_env)

    # One service, client and statistics registry per process
    app.state.monitoring_service = get_monitoring_service()

    # Log important configuration
    logger.info(
        "Configuration loaded",
        app_name=settings.app.app_name,
        kibana_url=settings.kibana.base_url,
        cluster_id=settings.kibana.cluster_id,
        cors_origins=settings.app.cors_origins_list,
    )

    if not settings.kibana.cluster_id:
        logger.warning("KIBANA_CLUSTER_ID is not set; monitoring calls will fail")

    yield

    # Shutdown
    logger.info("Shutting down application")
    app.state.monitoring_service.log_call_statistics()
    await close_monitoring_service()


# Create FastAPI app
app = FastAPI(
    title=settings.app.app_name,
    version=settings.app.app_version,
    description="Elasticsearch Monitoring Gateway - Kibana Monitoring API proxy",
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    lifespan=lifespan,
)


# ============================================================================
# Middleware
# ============================================================================

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins_list,
    allow_credentials=settings.app.cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request, call_next):
    """Log all requests and add request ID."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    if settings.log.requests:
        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            request_id=request_id,
        )

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if settings.log.requests:
            duration = time.time() - start_time
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
                request_id=request_id,
            )

        return response

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error=str(e),
            duration_ms=round(duration * 1000, 2),
            request_id=request_id,
        )
        raise


# ============================================================================
# Exception Handlers
# ============================================================================

def _error_response(request, status_code: int, code, message: str, **extra) -> JSONResponse:
    error = {"code": code, "message": message}
    error.update(extra)
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "meta": {
                "request_id": getattr(request.state, "request_id", None),
            },
        },
    )


@app.exception_handler(MonitoringError)
async def monitoring_exception_handler(request, exc: MonitoringError):
    """Handle Kibana call failures."""
    cause = exc.cause if isinstance(exc, CompositeFetchFailure) else exc
    logger.error(
        "Monitoring request failed",
        path=request.url.path,
        upstream_path=getattr(cause, "path", None),
        upstream_status=getattr(cause, "status_code", None),
        error=str(exc),
        error_type=type(exc).__name__,
    )

    code = "UPSTREAM_ERROR" if isinstance(cause, UpstreamError) else "MONITORING_ERROR"
    return _error_response(request, 500, code, str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return _error_response(request, exc.status_code, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Handle validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return _error_response(
        request,
        422,
        "VALIDATION_ERROR",
        "Request validation failed",
        details=errors,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )

    return _error_response(
        request,
        500,
        "INTERNAL_ERROR",
        "An internal error occurred" if not settings.app.app_debug else str(exc),
    )


# ============================================================================
# Routes
# ============================================================================

app.include_router(health.router, prefix="/api/v1")
app.include_router(monitor_router, prefix="/api")
