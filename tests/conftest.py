"""
Shared pytest fixtures for the gateway test suite.

HubSpot and Gemini are faked with httpx.MockTransport handlers (see
tests/fakes.py) injected into the services.
"""
import os

import pytest

os.environ.setdefault("HUBSPOT_ACCESS_TOKEN", "test-token")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

from app.core.config import Settings  # noqa: E402
from app.core.dependencies import get_hubspot_service, get_insight_engine  # noqa: E402
from app.services.gemini_service import GeminiEngine  # noqa: E402
from app.services.hubspot_service import HubSpotService  # noqa: E402
from tests.fakes import FakeUpstream  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        hubspot_access_token="test-token",
        gemini_api_key="test-gemini-key",
    )


@pytest.fixture
def fake_hubspot() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def fake_gemini() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def hubspot_service(settings, fake_hubspot) -> HubSpotService:
    return HubSpotService(settings, transport=fake_hubspot.transport())


@pytest.fixture
def gemini_engine(settings, fake_gemini) -> GeminiEngine:
    return GeminiEngine(settings, transport=fake_gemini.transport())


@pytest.fixture
def client(hubspot_service, gemini_engine):
    """TestClient with HubSpot and Gemini routed to the fakes."""
    from fastapi.testclient import TestClient
    from app.main import app

    app.dependency_overrides[get_hubspot_service] = lambda: hubspot_service
    app.dependency_overrides[get_insight_engine] = lambda: gemini_engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
