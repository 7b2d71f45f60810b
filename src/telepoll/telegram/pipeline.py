from __future__ import annotations

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from ..logging import get_logger
from .api_models import Update
from .dispatch import Dispatcher
from .poller import UpdatePoller

logger = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 100


async def _feed(
    poller: UpdatePoller,
    send_stream: MemoryObjectSendStream[Update],
    scope: anyio.CancelScope,
) -> None:
    async with send_stream:
        with scope:
            async for update in poller.updates():
                await send_stream.send(update)
    logger.info("pipeline.poller_stopped", offset=poller.offset)


async def run_pipeline(
    poller: UpdatePoller,
    dispatcher: Dispatcher,
    *,
    stop: anyio.Event | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Feed polled updates to the dispatcher until ``stop`` is set.

    Setting ``stop`` cancels the poll loop, including a long-poll in flight.
    Updates already buffered are still dispatched before this returns.
    """
    send_stream, receive_stream = anyio.create_memory_object_stream[Update](
        max_buffer_size=buffer_size
    )
    poll_scope = anyio.CancelScope()
    async with anyio.create_task_group() as tg:
        tg.start_soon(_feed, poller, send_stream, poll_scope)
        if stop is not None:

            async def watch_stop() -> None:
                await stop.wait()
                logger.info("pipeline.stopping")
                poll_scope.cancel()

            tg.start_soon(watch_stop)
        handled = await dispatcher.consume(receive_stream)
        tg.cancel_scope.cancel()
    logger.info("pipeline.stopped", handled=handled, offset=poller.offset)
    return handled
