"""
Client for the Cloudflare Workers AI Responses endpoint.

Performs exactly one POST per chat request. The raw response text is always
handed back to the caller (on success inside `BackendCallResult`, on failure on
the raised error) so the request handler can log it verbatim. This module does
not log bodies itself.
"""

import logging
from dataclasses import dataclass

import httpx
from opentelemetry import trace
from pydantic import ValidationError

from .backend_protocol import BackendRequest, BackendResponse
from .errors import BackendError, DecodeError, TransportError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class BackendCallResult:
    """Parsed backend response plus the exact text it was parsed from."""

    response: BackendResponse
    raw_text: str


class BackendClient:
    """
    Thin wrapper around a shared httpx.AsyncClient bound to one backend endpoint.

    Cancelling the awaiting task aborts the in-flight request; the chat handler
    does so through `run_until_disconnected` when the HTTP client goes away.

    Example:
        >>> client = BackendClient(http_client, url=settings.backend_url, token=settings.auth_token)
        >>> result = await client.create_response(backend_request)
        >>> result.response.output[0].type
        'reasoning'
    """

    def __init__(self, http_client: httpx.AsyncClient, url: str, token: str):
        self.http_client = http_client
        self.url = url
        self.token = token

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    async def create_response(self, request: BackendRequest) -> BackendCallResult:
        """
        Send the request to the backend and parse the result.

        Args:
            request: Translated backend request.

        Returns:
            BackendCallResult with the parsed response and raw body text.

        Raises:
            TransportError: If the backend could not be reached.
            BackendError: If the backend returned a non-success status.
            DecodeError: If the body is not a valid Responses API result.
        """
        with tracer.start_as_current_span(
            "backend.create_response",
            attributes={
                "llm.model": request.model,
                "llm.message_count": len(request.input),
            },
        ) as span:
            logger.debug(f"POST {self.url} ({len(request.input)} input messages)")
            try:
                response = await self.http_client.post(
                    self.url,
                    json=request.to_payload(),
                    headers=self.headers,
                )
            except httpx.RequestError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                raise TransportError(f"{type(e).__name__}: {e}") from e

            raw_text = response.text
            span.set_attribute("http.status_code", response.status_code)

            if not response.is_success:
                span.set_status(trace.Status(trace.StatusCode.ERROR, raw_text))
                raise BackendError(response.status_code, raw_text)

            try:
                parsed = BackendResponse.model_validate_json(raw_text)
            except ValidationError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, "decode failed"))
                raise DecodeError(
                    f"invalid response body ({e.error_count()} validation errors)",
                    raw_body=raw_text,
                ) from e

            span.set_attribute("llm.token_count.prompt", parsed.usage.prompt_tokens)
            span.set_attribute("llm.token_count.completion", parsed.usage.completion_tokens)
            span.set_attribute("llm.token_count.total", parsed.usage.total_tokens)
            return BackendCallResult(response=parsed, raw_text=raw_text)
