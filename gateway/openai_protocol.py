"""
OpenAI API Protocol Abstraction.

This module provides the Pydantic models for the inbound dialect: the
OpenAI-compatible chat completion request, response, streaming chunk, model
listing and error shapes the gateway presents to its clients. It also holds
the Server-Sent Events framing used by the streaming emitter.

Based on OpenAI API documentation:
- https://platform.openai.com/docs/api-reference/chat
- https://platform.openai.com/docs/api-reference/chat-streaming
"""
import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator


SSE_DONE = "data: [DONE]\n\n"


def dump_json(data: object) -> str:
    """Serialize to JSON keeping non-ASCII and HTML characters literal."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def create_sse(data: dict[str, Any]) -> str:
    """
    Convert a dictionary to a Server-Sent Events (SSE) chunk.

    Args:
        data: JSON-serializable payload.

    Returns:
        SSE formatted string.
    """
    return f"data: {dump_json(data)}\n\n"


class OpenAIObjectType(Enum):
    """OpenAI response object types."""

    CHAT_COMPLETION = "chat.completion"
    CHAT_COMPLETION_CHUNK = "chat.completion.chunk"


# Any JSON value (text, a list of content parts, a number, ...). It is
# forwarded to the backend without interpretation.
MessageContent = JsonValue


class ChatMessage(BaseModel):
    """A single chat message. Role is kept as a free string so it round-trips verbatim."""

    model_config = ConfigDict(extra='allow')

    role: str
    content: MessageContent = None


class ChatCompletionRequest(BaseModel):
    """
    OpenAI chat completion request as accepted by the gateway.

    Only the fields the backend understands are modelled; anything else a
    client sends (max_tokens, tools, ...) is accepted and ignored.
    """

    model_config = ConfigDict(extra='allow')

    model: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    stream: bool | None = False
    temperature: float | None = None
    top_p: float | None = None

    @field_validator('messages', mode='before')
    @classmethod
    def null_messages_as_empty(cls, value: object) -> object:
        """`"messages": null` is treated like an absent list."""
        return [] if value is None else value


class Usage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class AssistantMessage(BaseModel):
    """Message carried by a non-streaming choice."""

    role: Literal["assistant"] = "assistant"
    content: str = ""


class Choice(BaseModel):
    """Choice in a non-streaming chat completion response."""

    index: int = 0
    message: AssistantMessage
    finish_reason: Literal["stop"] = "stop"


class ChatCompletionResponse(BaseModel):
    """Complete chat completion response (the unified response)."""

    id: str
    object: str = OpenAIObjectType.CHAT_COMPLETION.value
    created: int
    model: str
    choices: list[Choice]
    usage: Usage


# Streaming models
class Delta(BaseModel):
    """Incremental message delta in a streaming chunk."""

    role: Literal["assistant"] | None = None
    content: str | None = None


class StreamChoice(BaseModel):
    """Choice in a streaming chunk. finish_reason is serialized even when null."""

    index: int = 0
    delta: Delta
    finish_reason: Literal["stop"] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with an explicit null finish_reason and a sparse delta."""
        return {
            "index": self.index,
            "delta": self.delta.model_dump(exclude_none=True),
            "finish_reason": self.finish_reason,
        }


class ChatCompletionChunk(BaseModel):
    """One streaming chunk (frame) of a chat completion."""

    id: str
    object: str = OpenAIObjectType.CHAT_COMPLETION_CHUNK.value
    created: int
    model: str
    choices: list[StreamChoice]
    usage: Usage | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize for the wire.

        `finish_reason` must be present as null on start and content frames, and
        `usage` must only appear on the end frame, so the generic model_dump
        variants do not fit.
        """
        data = {
            "id": self.id,
            "object": self.object,
            "created": self.created,
            "model": self.model,
            "choices": [choice.to_dict() for choice in self.choices],
        }
        if self.usage is not None:
            data["usage"] = self.usage.model_dump()
        return data


# API metadata models
class ModelInfo(BaseModel):
    """Model information for OpenAI-compatible models."""

    id: str
    object: str = "model"
    created: int
    owned_by: str


class ModelsResponse(BaseModel):
    """Response model for listing available models."""

    object: str = "list"
    data: list[ModelInfo]


class ErrorDetail(BaseModel):
    """Model for error details in API responses."""

    message: str
    type: str
    code: str | None = None


class ErrorResponse(BaseModel):
    """Model for error responses in the API."""

    error: ErrorDetail
