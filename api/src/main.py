"""
FastAPI application entry point for the Roblox Place Creator API.

This module provides the main FastAPI application with:
- Health and place-creation endpoints
- Request logging with correlation IDs
- Prometheus metrics
- CORS
- Open Cloud HTTP session management in the lifespan
- Fail-fast configuration loading before the server binds
"""

import sys
import time
import uuid
import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry, CONTENT_TYPE_LATEST
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src.config import get_settings, Settings
from api.src.routers.places import router as places_router, error_response
from api.src.services.open_cloud_client import OpenCloudClient, create_session
from shared.logging import configure_logging, bind_context, unbind_context
from shared.metrics import RelayMetrics, get_metrics_handler

# Initialize logger
logger = structlog.get_logger(__name__)

# Metric label for requests that matched no route
UNMATCHED_ENDPOINT = "unmatched"

# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Opens the shared aiohttp session used for Open Cloud calls and closes
    it on shutdown.
    """
    settings: Settings = app.state.settings

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    session = create_session(settings)
    app.state.open_cloud_client = OpenCloudClient(settings, session)

    logger.info(
        "application_started",
        template_place_id=settings.template_place_id,
        universe_id=settings.roblox_universe_id,
        api_key_configured=bool(settings.roblox_api_key)
    )

    try:
        yield

    finally:
        logger.info("application_shutting_down")
        await session.close()
        app.state.open_cloud_client = None
        logger.info("application_shutdown_complete")

# ============================================================================
# Request Logging and Metrics Middleware
# ============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging, correlation IDs and metrics."""

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        metrics: RelayMetrics = request.app.state.metrics

        bind_context(correlation_id=correlation_id)
        start_time = time.time()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            endpoint = self._endpoint_label(request)

            metrics.http_requests.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            metrics.http_request_duration.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers["X-Correlation-ID"] = correlation_id
            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            raise

        finally:
            unbind_context("correlation_id")

    def _endpoint_label(self, request: Request) -> str:
        """Route template for metric labels; unmatched paths share one label."""
        route = request.scope.get("route")
        return getattr(route, "path", UNMATCHED_ENDPOINT)

# ============================================================================
# Exception Handlers
# ============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request bodies that are not a JSON object of the expected shape."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=errors
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request body",
        "Request body must be a JSON object with userId and displayName",
        errors,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (unknown routes, wrong methods)."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return error_response(exc.status_code, str(exc.detail), str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": str(exc)}
    )

# ============================================================================
# FastAPI Application
# ============================================================================

def create_app(settings: Settings, registry: Optional[CollectorRegistry] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Immutable application settings
        registry: Prometheus registry; a private one is created when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Creates personal Roblox places from a template place "
            "through the Roblox Open Cloud API."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.is_development,
    )

    app.state.settings = settings
    app.state.metrics = RelayMetrics(registry=registry or CollectorRegistry())
    app.state.open_cloud_client = None

    # Middleware
    if settings.cors_enabled:
        logger.info("configuring_cors", origins=settings.cors_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(RequestLoggingMiddleware)

    # Exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Routers
    app.include_router(places_router)

    if settings.metrics_enabled:
        render_metrics = get_metrics_handler(app.state.metrics.registry)

        @app.get("/metrics", tags=["Monitoring"], include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus metrics endpoint."""
            return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app

# ============================================================================
# Application Entry Point
# ============================================================================

def load_settings() -> Settings:
    """
    Load settings or terminate the process.

    Missing ROBLOX_API_KEY, ROBLOX_UNIVERSE_ID or TEMPLATE_PLACE_ID ends the
    process with exit code 1 before any socket is bound.
    """
    try:
        return get_settings()
    except ValidationError as e:
        configure_logging(log_level="INFO", json_logs=False)
        for error in e.errors():
            variable = "_".join(str(part) for part in error["loc"]).upper()
            logger.error(
                "configuration_invalid",
                variable=variable,
                error=error["msg"]
            )
        sys.exit(1)


def main() -> None:
    """Run the API with Uvicorn."""
    settings = load_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment,
    )

    app = create_app(settings)

    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        template_place_id=settings.template_place_id,
        api_key_configured=bool(settings.roblox_api_key),
        health_url=f"http://localhost:{settings.port}/health",
        create_place_url=f"http://localhost:{settings.port}/create_place"
    )

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
