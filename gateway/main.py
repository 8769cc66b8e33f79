"""
FastAPI application for the Responses Gateway.

This module provides an OpenAI-compatible chat completion API backed by the
Cloudflare Workers AI Responses endpoint. Requests are translated to the
backend dialect, answered in one backend call, and translated back; when the
client asks for `stream=true` the finished answer is replayed as SSE chunks.

Serve with the CLI (`responses-gateway`) or with uvicorn's factory mode:

    uvicorn gateway.main:create_app --factory --port 10000
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import check_client_key, verify_client_key
from .config import Settings
from .dependencies import (
    BackendClientDependency,
    ServiceContainer,
    SettingsDependency,
)
from .disconnect import run_until_disconnected
from .errors import (
    AuthError,
    BackendCallError,
    ClientDisconnectedError,
    ClientInputError,
    GatewayError,
    MethodError,
)
from .logging_config import initialize_logging
from .openai_protocol import (
    ChatCompletionRequest,
    ErrorDetail,
    ErrorResponse,
    ModelInfo,
    ModelsResponse,
)
from .streaming import stream_chat_completion
from .tracing import setup_tracing
from .translation import to_backend_request, to_chat_response

logger = logging.getLogger(__name__)

MODEL_OWNER = "openai"

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"
PROTECTED_PATHS = frozenset({CHAT_COMPLETIONS_PATH, MODELS_PATH})

# Status logged for requests abandoned by their client; the client never sees it
CLIENT_CLOSED_REQUEST = 499


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Manage application lifespan events.

    NOTE: This runs once when the server starts and after it stops (yields control).
    """
    settings: Settings = app.state.settings
    initialize_logging(settings.log_level)
    setup_tracing(
        enabled=settings.enable_tracing,
        project_name=settings.phoenix_project_name,
        endpoint=settings.phoenix_collector_endpoint,
        enable_console_export=settings.enable_console_tracing,
    )

    services = ServiceContainer(settings)
    await services.initialize()
    app.state.services = services
    logger.info(
        f"Serving model {settings.model} "
        f"(client auth {'enabled' if settings.auth_enabled else 'disabled'})",
    )
    try:
        yield
    finally:
        await services.cleanup()


async def gateway_error_handler(
        request: Request,  # noqa: ARG001
        exc: GatewayError,
    ) -> JSONResponse:
    """Render any GatewayError as an OpenAI-style error response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_error_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
    """
    Map routing errors (405, 404) into the error envelope.

    A wrong method on a protected endpoint is only reported to an authorized
    client; everyone else gets the 401.
    """
    if exc.status_code == 405:
        if request.url.path in PROTECTED_PATHS:
            try:
                check_client_key(
                    request.headers.get("Authorization"),
                    request.app.state.settings.client_key,
                )
            except AuthError as e:
                return await gateway_error_handler(request, e)
        return await gateway_error_handler(request, MethodError("Method not allowed"))
    error = ErrorResponse(
        error=ErrorDetail(message=str(exc.detail), type="invalid_request_error"),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error.model_dump(),
        headers=getattr(exc, "headers", None),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application around an immutable Settings object.

    Args:
        settings: Configuration to serve with. Read from the environment if omitted.
    """
    app = FastAPI(
        title="Responses Gateway",
        version="1.0.0",
        description="OpenAI-compatible chat completions backed by Cloudflare Workers AI.",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.add_api_route("/health", health_check, methods=["GET"])
    app.add_api_route(MODELS_PATH, list_models, methods=["GET"])
    app.add_api_route(
        CHAT_COMPLETIONS_PATH,
        chat_completions,
        methods=["POST"],
        response_model=None,
    )
    return app


async def health_check(settings: SettingsDependency) -> dict[str, object]:
    """Liveness probe; does not call the backend."""
    return {
        "status": "healthy",
        "timestamp": int(time.time()),
        "model": settings.model,
    }


async def list_models(
    settings: SettingsDependency,
    _: bool = Depends(verify_client_key),
) -> ModelsResponse:
    """
    List the single model this gateway serves.

    Requires authentication via bearer token when a client key is configured.
    """
    return ModelsResponse(
        data=[
            ModelInfo(
                id=settings.model,
                created=int(time.time()),
                owned_by=MODEL_OWNER,
            ),
        ],
    )


async def read_chat_request(
    http_request: Request,
    _: bool = Depends(verify_client_key),
) -> ChatCompletionRequest:
    """
    Parse the chat completion body once the client is authorized.

    Raises:
        ClientInputError: 400 if the body is not valid JSON or not a chat request.
    """
    raw_request = await http_request.body()
    logger.info(f"Client request JSON: {raw_request.decode('utf-8', errors='replace')}")
    try:
        return ChatCompletionRequest.model_validate_json(raw_request)
    except ValidationError as e:
        errors = e.errors()
        reason = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        raise ClientInputError(f"Invalid JSON: {reason}") from e


async def chat_completions(
    http_request: Request,
    settings: SettingsDependency,
    backend: BackendClientDependency,
    request: ChatCompletionRequest = Depends(read_chat_request),
) -> Response:
    """
    OpenAI-compatible chat completions endpoint.

    The client's `model` is ignored; every request is answered by the configured
    backend model. With `stream=true` the complete answer is replayed as
    `chat.completion.chunk` SSE events, one character per event. If the client
    disconnects while the backend call is in flight, the call is cancelled.

    Requires authentication via bearer token when a client key is configured.
    """
    backend_request = to_backend_request(request, model=settings.model)

    try:
        result = await run_until_disconnected(
            backend.create_response(backend_request),
            is_disconnected=http_request.is_disconnected,
        )
    except ClientDisconnectedError:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except BackendCallError as e:
        if e.raw_body is not None:
            logger.error(f"Backend raw response: {e.raw_body}")
        logger.error(f"Backend call failed: {e.detail}")
        raise

    logger.info(f"Backend raw response: {result.raw_text}")

    response = to_chat_response(result.response)

    if request.stream:
        return StreamingResponse(
            stream_chat_completion(
                response,
                is_disconnected=http_request.is_disconnected,
                chunk_delay=settings.stream_chunk_delay,
            ),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return JSONResponse(content=response.model_dump())
