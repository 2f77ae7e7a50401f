"""
FastAPI dependency injection for settings, the Open Cloud client and metrics.

Everything is read from ``app.state``, which the application factory and
lifespan populate. Tests replace these through ``app.dependency_overrides``.
"""

import structlog
from fastapi import Request

from api.src.config import Settings
from api.src.services.open_cloud_client import OpenCloudClient
from shared.metrics import RelayMetrics

logger = structlog.get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """
    Get the settings the application was created with.

    Returns:
        Immutable Settings instance
    """
    return request.app.state.settings


def get_open_cloud_client(request: Request) -> OpenCloudClient:
    """
    Get the Open Cloud client created during startup.

    Returns:
        OpenCloudClient bound to the shared HTTP session

    Raises:
        RuntimeError: If the application lifespan has not run
    """
    client = getattr(request.app.state, "open_cloud_client", None)
    if client is None:
        logger.error("open_cloud_client_not_initialized")
        raise RuntimeError(
            "Open Cloud client not initialized. It is created in the application lifespan."
        )
    return client


def get_metrics(request: Request) -> RelayMetrics:
    """
    Get the metrics container for this application.

    Returns:
        RelayMetrics instance
    """
    return request.app.state.metrics
