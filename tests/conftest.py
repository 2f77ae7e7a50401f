"""
Shared fixtures for the place creator API tests.

Provides:
- Settings built without reading the process environment or a .env file
- A fake Open Cloud client that records calls and returns a canned outcome
- A FastAPI TestClient wired to the fake client
"""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from api.src.config import Settings, clear_settings_cache
from api.src.dependencies import get_open_cloud_client
from api.src.main import create_app
from api.src.services.open_cloud_client import PlaceCreationOutcome, PlaceCreationResult


TEST_API_KEY = "test-open-cloud-key"
TEST_UNIVERSE_ID = "4815162342"
TEST_TEMPLATE_PLACE_ID = 1029384756


def make_settings(**overrides) -> Settings:
    """Build Settings from explicit values only."""
    values = {
        "roblox_api_key": TEST_API_KEY,
        "roblox_universe_id": TEST_UNIVERSE_ID,
        "template_place_id": TEST_TEMPLATE_PLACE_ID,
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeOpenCloudClient:
    """Stand-in for OpenCloudClient that never touches the network."""

    def __init__(
        self,
        result: Optional[PlaceCreationResult] = None,
        error: Optional[Exception] = None,
    ):
        self.result = result or PlaceCreationResult(
            outcome=PlaceCreationOutcome.CREATED,
            place_id=123456789,
            status_code=201,
        )
        self.error = error
        self.calls: List[str] = []

    async def create_place(self, display_name: str) -> PlaceCreationResult:
        self.calls.append(display_name)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_client() -> FakeOpenCloudClient:
    return FakeOpenCloudClient()


@pytest.fixture
def app(settings, fake_client):
    application = create_app(settings)
    application.dependency_overrides[get_open_cloud_client] = lambda: fake_client
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
