"""
Roblox Open Cloud client for creating places from a template.

Provides:
- Classification of Open Cloud responses into a closed set of outcomes
- A thin async client around the "create place in universe" endpoint

Nothing here retries: every call is a single attempt and its outcome is
returned to the caller, never raised.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
import structlog

from api.src.config import Settings

logger = structlog.get_logger(__name__)


class PlaceCreationOutcome(str, Enum):
    """Possible results of one create-place call."""
    CREATED = "created"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    UPSTREAM_FAILURE = "upstream_failure"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class PlaceCreationResult:
    """Outcome of a create-place call with whatever detail is available."""
    outcome: PlaceCreationOutcome
    place_id: Optional[int] = None
    status_code: Optional[int] = None
    details: Any = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is PlaceCreationOutcome.CREATED


def build_place_payload(display_name: str, template_place_id: int) -> Dict[str, Any]:
    """
    Build the JSON body for a new personal place.

    Args:
        display_name: Name of the user the place belongs to
        template_place_id: Place to clone

    Returns:
        Request body for the Open Cloud create-place endpoint
    """
    return {
        "name": f"{display_name}'s Personal Place",
        "description": f"Personal place for {display_name}",
        "basePlaceId": template_place_id,
    }


def extract_place_id(body: Any) -> Optional[int]:
    """Return the integer placeId from a response body, if there is one."""
    if not isinstance(body, dict):
        return None

    value = body.get("placeId")
    # bool is an int subclass
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def classify_response(status_code: int, body: Any) -> PlaceCreationResult:
    """
    Classify an Open Cloud HTTP response.

    401 and 403 are reported as credential problems. Any other non-2xx
    status, or a 2xx without a usable placeId, is a generic upstream failure.

    Args:
        status_code: HTTP status returned by Open Cloud
        body: Decoded response body (dict/list for JSON, str otherwise, None if empty)

    Returns:
        PlaceCreationResult describing the outcome
    """
    if 200 <= status_code < 300:
        place_id = extract_place_id(body)
        if place_id is not None:
            return PlaceCreationResult(
                outcome=PlaceCreationOutcome.CREATED,
                place_id=place_id,
                status_code=status_code,
                details=body,
            )
        return PlaceCreationResult(
            outcome=PlaceCreationOutcome.UPSTREAM_FAILURE,
            status_code=status_code,
            details=body if body not in (None, "") else "Response did not contain a placeId",
        )

    if status_code == 401:
        return PlaceCreationResult(
            outcome=PlaceCreationOutcome.UNAUTHORIZED,
            status_code=status_code,
            details=body,
        )

    if status_code == 403:
        return PlaceCreationResult(
            outcome=PlaceCreationOutcome.FORBIDDEN,
            status_code=status_code,
            details=body,
        )

    return PlaceCreationResult(
        outcome=PlaceCreationOutcome.UPSTREAM_FAILURE,
        status_code=status_code,
        details=body if body not in (None, "") else f"Request failed with status code {status_code}",
    )


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    """Decode a response body as JSON, falling back to text."""
    raw = await response.read()
    if not raw:
        return None

    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def create_session(settings: Settings) -> aiohttp.ClientSession:
    """
    Create the HTTP session used for Open Cloud calls.

    The session carries the total timeout for each request and must be
    closed on shutdown.
    """
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.open_cloud_timeout),
    )


class OpenCloudClient:
    """Client for the Open Cloud create-place endpoint."""

    def __init__(self, settings: Settings, session: aiohttp.ClientSession):
        """
        Initialize the client.

        Args:
            settings: Application settings (credential, universe, template)
            session: Shared aiohttp session, owned by the caller
        """
        self.settings = settings
        self.session = session

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.settings.roblox_api_key,
            "Content-Type": "application/json",
        }

    async def create_place(self, display_name: str) -> PlaceCreationResult:
        """
        Create a personal place cloned from the template place.

        Args:
            display_name: Name of the user the place is for

        Returns:
            PlaceCreationResult; transport errors and timeouts are reported
            as TRANSPORT_FAILURE rather than raised
        """
        url = self.settings.create_place_url
        payload = build_place_payload(display_name, self.settings.template_place_id)

        try:
            async with self.session.post(url, json=payload, headers=self._headers) as response:
                status_code = response.status
                body = await _read_body(response)

        except asyncio.TimeoutError:
            message = f"Open Cloud request timed out after {self.settings.open_cloud_timeout}s"
            logger.error("open_cloud_request_failed", url=url, error=message)
            return PlaceCreationResult(
                outcome=PlaceCreationOutcome.TRANSPORT_FAILURE,
                details=message,
            )

        except aiohttp.ClientError as e:
            message = str(e) or e.__class__.__name__
            logger.error("open_cloud_request_failed", url=url, error=message)
            return PlaceCreationResult(
                outcome=PlaceCreationOutcome.TRANSPORT_FAILURE,
                details=message,
            )

        result = classify_response(status_code, body)

        if not result.succeeded:
            logger.error(
                "open_cloud_request_failed",
                url=url,
                status_code=status_code,
                outcome=result.outcome.value,
                details=body,
            )

        return result
