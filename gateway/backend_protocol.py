"""
Cloudflare Workers AI Responses API protocol.

Pydantic models for the backend dialect. Response models are deliberately
lenient: every field has a default so a partially populated result still
validates, and unknown fields are ignored.

Based on:
- https://developers.cloudflare.com/workers-ai/features/openai-compatibility/
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .openai_protocol import MessageContent


REASONING_ITEM_TYPE = "reasoning"
MESSAGE_ITEM_TYPE = "message"
REASONING_TEXT_TYPE = "reasoning_text"
OUTPUT_TEXT_TYPE = "output_text"


class BackendInputMessage(BaseModel):
    """One entry of the backend `input` list."""

    role: str
    content: MessageContent


class BackendRequest(BaseModel):
    """Request body for the Responses endpoint."""

    model: str
    input: list[BackendInputMessage]
    temperature: float | None = None
    top_p: float | None = None

    def to_payload(self) -> dict[str, Any]:
        """
        Serialize for the wire.

        Optional sampling parameters are only included when they were set,
        while message content is always kept (even when null).
        """
        return self.model_dump(exclude_unset=True)


class _LenientModel(BaseModel):
    """Base for response models: explicit nulls fall back to field defaults."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class BackendContentItem(_LenientModel):
    """A typed piece of text inside an output item."""

    type: str = ""
    text: str = ""


class BackendOutputItem(_LenientModel):
    """An output item: a reasoning trace or a message."""

    id: str = ""
    type: str = ""
    role: str = ""
    status: str = ""
    content: list[BackendContentItem] = Field(default_factory=list)


class BackendUsage(_LenientModel):
    """Token usage reported by the backend."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class BackendResponse(_LenientModel):
    """Parsed Responses API result."""

    id: str = ""
    created: int = Field(default=0, alias="created_at")
    model: str = ""
    object: str = ""
    output: list[BackendOutputItem] = Field(default_factory=list)
    usage: BackendUsage = Field(default_factory=BackendUsage)

    @field_validator("created", mode="before")
    @classmethod
    def truncate_timestamp(cls, value: Any) -> Any:
        # some deployments report fractional seconds
        if isinstance(value, float):
            return int(value)
        return value
