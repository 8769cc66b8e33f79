"""
Abandon in-flight work when the HTTP client goes away.

ASGI servers do not cancel a regular endpoint when the peer disconnects, so
the backend call is run as its own task and raced against a watcher that polls
the request's `is_disconnected()`.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

from .errors import ClientDisconnectedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_POLL_INTERVAL = 0.1


async def run_until_disconnected(
        coro: Coroutine[Any, Any, T],
        is_disconnected: Callable[[], Awaitable[bool]],
        poll_interval: float = DISCONNECT_POLL_INTERVAL,
    ) -> T:
    """
    Await `coro`, cancelling it if the client disconnects first.

    Args:
        coro: The work to run (e.g. the backend call).
        is_disconnected: Async callable returning True once the client is gone.
        poll_interval: Seconds between disconnect checks.

    Returns:
        The result of `coro`. Its exceptions propagate unchanged.

    Raises:
        ClientDisconnectedError: If the client disconnected; `coro` has been
            cancelled and awaited by then.
    """
    task = asyncio.create_task(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await is_disconnected():
                logger.info("Client disconnected; cancelling backend call")
                task.cancel()
                await asyncio.wait({task})
                raise ClientDisconnectedError
    finally:
        # Our own cancellation (server shutdown) must not leak the task
        if not task.done():
            task.cancel()
