"""
Streaming emulation for complete chat responses.

The backend returns a finished answer, but OpenAI clients that ask for
`stream=true` expect a sequence of `chat.completion.chunk` events. This module
replays a finished `ChatCompletionResponse` as that sequence:

1. one start chunk announcing the assistant role,
2. one content chunk per character of the message,
3. one end chunk with `finish_reason="stop"` and usage,

followed by the `[DONE]` sentinel.

The async stream is consumed by Starlette's StreamingResponse, which writes and
flushes each yielded frame before asking for the next one.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator

from .openai_protocol import (
    SSE_DONE,
    ChatCompletionChunk,
    ChatCompletionResponse,
    Delta,
    StreamChoice,
    create_sse,
)

logger = logging.getLogger(__name__)


def _chunk(
        response: ChatCompletionResponse,
        delta: Delta,
        finish_reason: str | None = None,
        include_usage: bool = False,
    ) -> ChatCompletionChunk:
    return ChatCompletionChunk(
        id=response.id,
        created=int(time.time()),
        model=response.model,
        choices=[StreamChoice(index=0, delta=delta, finish_reason=finish_reason)],
        usage=response.usage if include_usage else None,
    )


def iter_stream_chunks(response: ChatCompletionResponse) -> Iterator[ChatCompletionChunk]:
    """
    Yield the start, content and end chunks for a complete response.

    Text is split by code point, so multi-byte characters are never divided
    across chunks and joining the content deltas reproduces the message exactly.
    An empty message yields only the start and end chunks.
    """
    yield _chunk(response, Delta(role="assistant"))

    content = response.choices[0].message.content if response.choices else ""
    for char in content:
        yield _chunk(response, Delta(content=char))

    yield _chunk(response, Delta(), finish_reason="stop", include_usage=True)


def format_chunk(chunk: ChatCompletionChunk) -> str:
    """Render a chunk as an SSE `data:` frame."""
    return create_sse(chunk.to_dict())


async def stream_chat_completion(
        response: ChatCompletionResponse,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
        chunk_delay: float = 0.0,
    ) -> AsyncGenerator[str]:
    """
    Emit a complete response as SSE frames.

    Args:
        response: The finished chat completion to replay.
        is_disconnected: Async callable returning True once the client has gone
            away. Checked before every frame; emission stops silently.
        chunk_delay: Seconds to sleep between frames. Zero still yields control
            to the event loop so other requests make progress.

    Yields:
        SSE frames, ending with the `[DONE]` sentinel.
    """
    try:
        for chunk in iter_stream_chunks(response):
            if is_disconnected and await is_disconnected():
                logger.info(f"Client disconnected while streaming {response.id}")
                return
            yield format_chunk(chunk)
            await asyncio.sleep(chunk_delay)

        if is_disconnected and await is_disconnected():
            logger.info(f"Client disconnected before [DONE] for {response.id}")
            return
        yield SSE_DONE
    except asyncio.CancelledError:
        # Server cancelled the stream because the peer closed the connection
        logger.info(f"Stream cancelled for {response.id}")
        return
