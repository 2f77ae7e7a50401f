"""
Integration tests for the full place-creation flow.

Runs the real application (lifespan, aiohttp session, OpenCloudClient)
against a fake Open Cloud server started with aiohttp's TestServer, and
talks to the API through httpx's ASGI transport in the same event loop.

Tests cover:
- End-to-end success with the exact outbound request
- Credential and upstream failures surfaced to the caller
- Unreachable Open Cloud
- Concurrent requests for distinct users
"""

import asyncio
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List

import httpx
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from api.src.main import create_app
from tests.conftest import TEST_API_KEY, TEST_TEMPLATE_PLACE_ID, TEST_UNIVERSE_ID, make_settings


pytestmark = pytest.mark.integration


def make_open_cloud_app(received: List[Dict[str, Any]], status: int = 201) -> web.Application:
    """Fake Open Cloud that derives placeId from the digits in the place name."""

    async def create_place(request: web.Request) -> web.Response:
        body = await request.json()
        received.append({
            "path": request.path,
            "api_key": request.headers.get("x-api-key"),
            "json": body,
        })
        # Interleave concurrent requests
        await asyncio.sleep(0.01)

        if status >= 400:
            return web.json_response({"code": status, "message": "rejected"}, status=status)

        digits = re.sub(r"\D", "", body["name"]) or "0"
        return web.json_response({"placeId": 9000 + int(digits)}, status=status)

    app = web.Application()
    app.router.add_post("/universes/v1/{universe_id}/places", create_place)
    return app


@asynccontextmanager
async def running_api(base_url: str):
    """Start the API with its lifespan and yield an httpx client for it."""
    app = create_app(make_settings(open_cloud_base_url=base_url))
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            yield app, http
    assert app.state.open_cloud_client is None


class TestPlaceCreationFlow:
    """Application wired to a fake Open Cloud server."""

    @pytest.mark.asyncio
    async def test_create_place_end_to_end(self):
        received = []
        async with TestServer(make_open_cloud_app(received)) as upstream:
            async with running_api(f"http://{upstream.host}:{upstream.port}") as (_, http):
                response = await http.post(
                    "/create_place",
                    json={"userId": 156, "displayName": "Player7"},
                )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "placeId": 9007,
            "userId": 156,
            "displayName": "Player7",
        }

        assert received == [{
            "path": f"/universes/v1/{TEST_UNIVERSE_ID}/places",
            "api_key": TEST_API_KEY,
            "json": {
                "name": "Player7's Personal Place",
                "description": "Personal place for Player7",
                "basePlaceId": TEST_TEMPLATE_PLACE_ID,
            },
        }]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, "Authentication failed"),
        (403, "Permission denied"),
        (500, "Failed to create place"),
    ])
    async def test_open_cloud_errors(self, status, error):
        received = []
        async with TestServer(make_open_cloud_app(received, status=status)) as upstream:
            async with running_api(f"http://{upstream.host}:{upstream.port}") as (_, http):
                response = await http.post(
                    "/create_place",
                    json={"userId": 156, "displayName": "Player7"},
                )

        assert response.status_code == 500
        assert response.json()["error"] == error
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_generic_failure_includes_upstream_body(self):
        received = []
        async with TestServer(make_open_cloud_app(received, status=502)) as upstream:
            async with running_api(f"http://{upstream.host}:{upstream.port}") as (_, http):
                response = await http.post(
                    "/create_place",
                    json={"userId": 156, "displayName": "Player7"},
                )

        assert response.json()["details"] == {"code": 502, "message": "rejected"}

    @pytest.mark.asyncio
    async def test_unreachable_open_cloud(self):
        async with running_api(f"http://127.0.0.1:{unused_port()}") as (_, http):
            response = await http.post(
                "/create_place",
                json={"userId": 156, "displayName": "Player7"},
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to create place"
        assert "Cannot connect to host" in body["details"]

    @pytest.mark.asyncio
    async def test_missing_fields_make_no_outbound_call(self):
        received = []
        async with TestServer(make_open_cloud_app(received)) as upstream:
            async with running_api(f"http://{upstream.host}:{upstream.port}") as (_, http):
                response = await http.post("/create_place", json={"userId": 156})

        assert response.status_code == 400
        assert received == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self):
        received = []
        async with TestServer(make_open_cloud_app(received)) as upstream:
            async with running_api(f"http://{upstream.host}:{upstream.port}") as (_, http):
                responses = await asyncio.gather(*[
                    http.post(
                        "/create_place",
                        json={"userId": f"user-{i}", "displayName": f"Player{i}"},
                    )
                    for i in range(1, 9)
                ])

        assert len(received) == 8
        for i, response in enumerate(responses, start=1):
            assert response.status_code == 200
            assert response.json() == {
                "success": True,
                "placeId": 9000 + i,
                "userId": f"user-{i}",
                "displayName": f"Player{i}",
            }
