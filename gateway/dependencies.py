"""
Dependency injection for the FastAPI application.

Long-lived resources (settings, the pooled HTTP client) are attached to the
application at startup; per-request objects such as the `BackendClient` are
built from them through FastAPI's dependency system.
"""

import logging
from typing import Annotated

import httpx
from fastapi import Depends, Request

from .backend_client import BackendClient
from .config import Settings

logger = logging.getLogger(__name__)


def create_production_http_client(settings: Settings) -> httpx.AsyncClient:
    """
    Create HTTP client with production-ready configuration.

    Configures timeouts and connection pooling for communicating with the
    backend API.

    Returns:
        Configured httpx.AsyncClient instance.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=settings.http_connect_timeout,
            read=settings.http_read_timeout,
            write=settings.http_write_timeout,
            pool=settings.http_read_timeout,  # Pool timeout same as read timeout
        ),
        limits=httpx.Limits(
            max_connections=settings.http_max_connections,
            max_keepalive_connections=settings.http_max_keepalive_connections,
            keepalive_expiry=settings.http_keepalive_expiry,
        ),
    )


class ServiceContainer:
    """
    Container for application services with proper lifecycle management.

    Usage in production (via FastAPI lifespan):
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            app.state.services = ServiceContainer(settings)
            await app.state.services.initialize()
            yield
            await app.state.services.cleanup()

    Usage in tests (as async context manager):
        async with ServiceContainer(settings) as container:
            ...
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.http_client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Create the pooled HTTP client used for backend calls."""
        self.http_client = create_production_http_client(self.settings)
        logger.info(f"Backend endpoint: {self.settings.backend_url}")

    async def cleanup(self) -> None:
        """Close the HTTP client during app shutdown."""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):  # noqa: ANN001
        await self.cleanup()
        return False


def get_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared HTTP client dependency."""
    services: ServiceContainer | None = getattr(request.app.state, "services", None)
    if services is None or services.http_client is None:
        raise RuntimeError(
            "Service container not initialized. "
            "HTTP client should be available after app startup. "
            "If testing, use TestClient as a context manager so the lifespan runs.",
        )
    return services.http_client


SettingsDependency = Annotated[Settings, Depends(get_settings)]


def get_backend_client(
        settings: SettingsDependency,
        http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    ) -> BackendClient:
    """Build a BackendClient bound to the configured endpoint and credentials."""
    return BackendClient(
        http_client=http_client,
        url=settings.backend_url,
        token=settings.auth_token,
    )


BackendClientDependency = Annotated[BackendClient, Depends(get_backend_client)]
