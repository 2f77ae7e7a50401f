"""
Router for the liveness probe and place creation.

Provides REST API endpoints for:
- Health check (GET /health)
- Creating a personal place from the template (POST /create_place)

Every error body has the shape {error, message, details?}.
"""

import structlog
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.src.config import Settings
from api.src.dependencies import get_app_settings, get_metrics, get_open_cloud_client
from api.src.models.place import (
    CreatePlaceRequest,
    CreatePlaceResponse,
    ErrorResponse,
    HealthResponse,
)
from api.src.services.open_cloud_client import OpenCloudClient, PlaceCreationOutcome
from shared.metrics import RelayMetrics

logger = structlog.get_logger(__name__)

router = APIRouter(
    responses={
        500: {"model": ErrorResponse, "description": "Internal Server Error"}
    }
)

# Outcome -> (error, message, include upstream details)
FAILURE_RESPONSES: Dict[PlaceCreationOutcome, Tuple[str, str, bool]] = {
    PlaceCreationOutcome.UNAUTHORIZED: (
        "Authentication failed",
        "Invalid ROBLOX_API_KEY. Please check your API key configuration.",
        False,
    ),
    PlaceCreationOutcome.FORBIDDEN: (
        "Permission denied",
        "API key does not have permission to create places. "
        "Check your Roblox API key permissions.",
        False,
    ),
    PlaceCreationOutcome.UPSTREAM_FAILURE: (
        "Failed to create place",
        "Place creation failed. Please check the API endpoint "
        "and your Roblox API key configuration.",
        True,
    ),
    PlaceCreationOutcome.TRANSPORT_FAILURE: (
        "Failed to create place",
        "Place creation failed. Please check the API endpoint "
        "and your Roblox API key configuration.",
        True,
    ),
}


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    """Build a JSON error response, omitting details when there are none."""
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


# ============================================================================
# HEALTH
# ============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Liveness probe",
)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Health check endpoint.

    Returns a fixed payload without touching Open Cloud.
    """
    return HealthResponse(status="ok", message=f"{settings.app_name} is running")


# ============================================================================
# PLACE CREATION
# ============================================================================


@router.post(
    "/create_place",
    response_model=CreatePlaceResponse,
    status_code=status.HTTP_200_OK,
    tags=["Places"],
    summary="Create a personal place",
    description="""
    Create a new place for a user, cloned from the configured template place.

    **Request Body:**
    - userId: Caller-supplied user identifier (string or number)
    - displayName: Name used to title the new place

    **Success Response (200):**
    - success, placeId, userId, displayName

    **Error Responses:**
    - 400: Missing userId or displayName, or a malformed body
    - 500: Open Cloud rejected the API key, the key lacks permission,
      the request failed, or an unexpected error occurred
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Missing required fields"},
    },
)
async def create_place(
    payload: Optional[CreatePlaceRequest] = None,
    client: OpenCloudClient = Depends(get_open_cloud_client),
    metrics: RelayMetrics = Depends(get_metrics),
):
    """
    Relay a place-creation request to Open Cloud.

    A single attempt is made; the Open Cloud outcome is mapped to a response
    through FAILURE_RESPONSES.
    """
    try:
        payload = payload or CreatePlaceRequest()

        if not payload.is_complete:
            logger.warning(
                "create_place_rejected",
                has_user_id=bool(payload.user_id),
                has_display_name=bool(payload.display_name),
            )
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                "Missing required fields",
                "Both userId and displayName are required",
            )

        logger.info(
            "create_place_requested",
            user_id=payload.user_id,
            display_name=payload.display_name,
        )

        result = await client.create_place(payload.display_name)
        metrics.place_creation_outcomes.labels(outcome=result.outcome.value).inc()

        if not result.succeeded:
            error, message, with_details = FAILURE_RESPONSES[result.outcome]
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error,
                message,
                result.details if with_details else None,
            )

        logger.info(
            "place_created",
            place_id=result.place_id,
            user_id=payload.user_id,
        )

        return CreatePlaceResponse(
            success=True,
            place_id=result.place_id,
            user_id=payload.user_id,
            display_name=payload.display_name,
        )

    except Exception as e:
        logger.error("create_place_unexpected_error", error=str(e), exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            "An unexpected error occurred while creating the place",
            str(e),
        )
