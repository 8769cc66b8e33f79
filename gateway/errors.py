"""
Error taxonomy for the Responses Gateway.

Every error the gateway reports to a client derives from `GatewayError`, which
knows its HTTP status and how to render itself as an OpenAI-style error body.
Backend failures keep the raw response text so the handler can log it.
"""

from typing import Any

from .openai_protocol import ErrorDetail, ErrorResponse


class GatewayError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    error_type: str = "internal_server_error"
    code: str | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Render as an OpenAI-compatible error envelope."""
        return ErrorResponse(
            error=ErrorDetail(message=self.message, type=self.error_type, code=self.code),
        ).model_dump()


class ClientInputError(GatewayError):
    """Request body is missing or is not a valid chat completion request."""

    status_code = 400
    error_type = "invalid_request_error"
    code = "invalid_json"


class AuthError(GatewayError):
    """Client authorization header is missing or does not match the client key."""

    status_code = 401
    error_type = "authentication_error"
    code = "invalid_client_key"


class MethodError(GatewayError):
    """HTTP method not supported by the endpoint."""

    status_code = 405
    error_type = "invalid_request_error"
    code = "method_not_allowed"


class BackendCallError(GatewayError):
    """
    Base class for failures talking to the backend API.

    Attributes:
        raw_body: Raw backend response text, or None if no response was received.
    """

    error_type = "backend_error"

    def __init__(self, detail: str, raw_body: str | None = None):
        super().__init__(f"Backend API error: {detail}")
        self.detail = detail
        self.raw_body = raw_body


class TransportError(BackendCallError):
    """Backend could not be reached (connection error, timeout)."""

    code = "backend_unreachable"

    def __init__(self, detail: str):
        super().__init__(detail, raw_body=None)


class BackendError(BackendCallError):
    """Backend answered with a non-success status code."""

    def __init__(self, status_code: int, raw_body: str):
        super().__init__(f"API request failed: {raw_body}", raw_body=raw_body)
        self.backend_status_code = status_code
        self.code = f"backend_status_{status_code}"


class DecodeError(BackendCallError):
    """Backend answered successfully but the body is not a valid response."""

    code = "backend_decode_failed"


class ClientDisconnectedError(Exception):
    """The client went away before a response could be sent."""
