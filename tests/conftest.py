"""
Test configuration and fixtures for the Responses Gateway.

Provides settings, application and client fixtures. Backend HTTP calls are
mocked with respx at the httpx transport level.
"""

import os

# Keep OpenTelemetry from installing exporters or background processors in tests
os.environ['OTEL_SDK_DISABLED'] = 'true'

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from gateway.config import Settings
from gateway.main import create_app
from tests.utils.gateway_helpers import make_settings

# Import all centralized fixtures to make them available globally
from tests.fixtures.backend_responses import *  # noqa: F403


@pytest.fixture
def test_settings() -> Settings:
    """Settings with client auth disabled."""
    return make_settings()


@pytest.fixture
def client(test_settings: Settings) -> Iterator[TestClient]:
    """TestClient for an app with client auth disabled; the lifespan runs."""
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


@pytest.fixture
def make_client() -> Iterator[Callable[..., TestClient]]:
    """
    Factory for TestClients with custom settings.

    Clients are entered (so the lifespan runs) and closed at teardown.
    """
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:
        test_client = TestClient(create_app(make_settings(**overrides)))
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
