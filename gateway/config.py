"""
Configuration settings for the Responses Gateway.

This module defines the application settings using Pydantic v2 BaseSettings,
including backend credentials, server options, and runtime configuration.
Settings are frozen once constructed and injected into the application by
`create_app`.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BACKEND_URL_TEMPLATE = (
    "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/v1/responses"
)


class Settings(BaseSettings):
    """Application settings for the Responses Gateway."""

    # Backend (Cloudflare Workers AI) Configuration
    account_id: str = Field(
        default="",
        alias="CF_ACCOUNT_ID",
        description="Cloudflare account ID used to build the backend URL",
    )
    model: str = Field(
        default="@cf/openai/gpt-oss-120b",
        alias="CF_MODEL",
        description="Backend model name; every request is routed to this model",
    )
    auth_token: str = Field(
        default="",
        alias="CF_AUTH_TOKEN",
        description="Bearer token sent to the backend API",
    )
    backend_url_template: str = Field(
        default=DEFAULT_BACKEND_URL_TEMPLATE,
        alias="BACKEND_URL_TEMPLATE",
        description="Backend endpoint URL with an {account_id} placeholder",
    )

    # Client Authentication
    client_key: str = Field(
        default="",
        alias="CLIENT_KEY",
        description="Shared secret clients must send as a bearer token (empty disables auth)",
    )

    # HTTP Client Configuration
    http_connect_timeout: float = Field(
        default=5.0,
        alias="HTTP_CONNECT_TIMEOUT",
        description="HTTP connection timeout in seconds",
    )
    http_read_timeout: float = Field(
        default=120.0,
        alias="HTTP_READ_TIMEOUT",
        description="HTTP read timeout in seconds (reasoning models can be slow)",
    )
    http_write_timeout: float = Field(
        default=10.0,
        alias="HTTP_WRITE_TIMEOUT",
        description="HTTP write timeout in seconds",
    )
    http_max_connections: int = Field(
        default=20,
        alias="HTTP_MAX_CONNECTIONS",
        description="Maximum total HTTP connections",
    )
    http_max_keepalive_connections: int = Field(
        default=5,
        alias="HTTP_MAX_KEEPALIVE_CONNECTIONS",
        description="Maximum keep-alive HTTP connections",
    )
    http_keepalive_expiry: float = Field(
        default=30.0,
        alias="HTTP_KEEPALIVE_EXPIRY",
        description="Keep-alive connection expiry time in seconds",
    )

    # Streaming Configuration
    stream_chunk_delay: float = Field(
        default=0.0,
        ge=0.0,
        alias="STREAM_CHUNK_DELAY",
        description="Delay in seconds between streamed character frames",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=10000, alias="API_PORT")
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Root log level (DEBUG, INFO, WARNING, ...)",
    )

    # Phoenix Tracing Configuration
    phoenix_collector_endpoint: str = Field(
        default="http://localhost:4317",
        alias="PHOENIX_COLLECTOR_ENDPOINT",
        description="Phoenix OTLP collector endpoint for tracing",
    )
    phoenix_project_name: str = Field(
        default="responses-gateway",
        alias="PHOENIX_PROJECT_NAME",
        description="Project name for organizing traces in Phoenix",
    )
    enable_tracing: bool = Field(
        default=False,
        alias="ENABLE_TRACING",
        description="Whether to enable OpenTelemetry tracing",
    )
    enable_console_tracing: bool = Field(
        default=False,
        alias="ENABLE_CONSOLE_TRACING",
        description="Whether to output traces to console for debugging",
    )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        populate_by_name=True,
        frozen=True,
    )

    @property
    def backend_url(self) -> str:
        """
        Backend endpoint with the account ID filled in.

        Example:
            >>> Settings(account_id="abc").backend_url
            'https://api.cloudflare.com/client/v4/accounts/abc/ai/v1/responses'
        """
        return self.backend_url_template.format(account_id=self.account_id)

    @property
    def auth_enabled(self) -> bool:
        """True when a client key is configured."""
        return bool(self.client_key)
