"""
Translation between the OpenAI chat dialect and the Responses backend dialect.

Both directions are pure functions. The request direction pins the model to the
configured backend model; the response direction separates reasoning text from
the assistant answer and folds them into a single chat message.
"""

from .backend_protocol import (
    MESSAGE_ITEM_TYPE,
    OUTPUT_TEXT_TYPE,
    REASONING_ITEM_TYPE,
    REASONING_TEXT_TYPE,
    BackendInputMessage,
    BackendRequest,
    BackendResponse,
)
from .openai_protocol import (
    AssistantMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    Usage,
)

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def to_backend_request(request: ChatCompletionRequest, model: str) -> BackendRequest:
    """
    Build a backend request from an inbound chat request.

    The client's `model` field is ignored; every request goes to `model`.
    Message content is passed through as-is, whatever its shape.

    Args:
        request: Inbound chat completion request.
        model: Configured backend model name.

    Returns:
        BackendRequest with temperature/top_p set only when the client sent them.
    """
    fields = {
        "model": model,
        "input": [
            BackendInputMessage(role=message.role, content=message.content)
            for message in request.messages
        ],
    }
    if request.temperature is not None:
        fields["temperature"] = request.temperature
    if request.top_p is not None:
        fields["top_p"] = request.top_p
    return BackendRequest(**fields)


def extract_reasoning_text(result: BackendResponse) -> str:
    """Return the reasoning trace, or an empty string if there is none."""
    reasoning = ""
    for item in result.output:
        if item.type != REASONING_ITEM_TYPE:
            continue
        for content in item.content:
            if content.type == REASONING_TEXT_TYPE:
                reasoning = content.text
    return reasoning


def extract_assistant_text(result: BackendResponse) -> str:
    """Return the assistant's answer text, or an empty string if there is none."""
    answer = ""
    for item in result.output:
        if item.type != MESSAGE_ITEM_TYPE or item.role != "assistant":
            continue
        for content in item.content:
            if content.type == OUTPUT_TEXT_TYPE:
                answer = content.text
    return answer


def compose_content(reasoning: str, answer: str) -> str:
    """
    Fold reasoning and answer into one message body.

    Example:
        >>> compose_content("step 1", "42")
        '<think>step 1</think>\\n42'
        >>> compose_content("", "42")
        '42'
    """
    if reasoning:
        return f"{THINK_OPEN}{reasoning}{THINK_CLOSE}\n{answer}"
    return answer


def to_chat_response(result: BackendResponse) -> ChatCompletionResponse:
    """
    Build the unified chat completion response from a backend result.

    Always produces exactly one choice. Missing output items degrade to empty
    text rather than raising.
    """
    content = compose_content(
        extract_reasoning_text(result),
        extract_assistant_text(result),
    )
    return ChatCompletionResponse(
        id=result.id,
        created=result.created,
        model=result.model,
        choices=[
            Choice(
                index=0,
                message=AssistantMessage(content=content),
                finish_reason="stop",
            ),
        ],
        usage=Usage(
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens,
        ),
    )
