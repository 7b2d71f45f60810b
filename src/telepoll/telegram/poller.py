from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

import anyio

from ..logging import get_logger
from .api_models import Update
from .client_api import BotClient
from .constants import MAX_UPDATES_LIMIT
from .errors import (
    TelegramApiError,
    TelegramDecodeError,
    TelegramNetworkError,
    TelegramRetryAfter,
)

logger = get_logger(__name__)

DEFAULT_POLL_TIMEOUT_S = 50
DEFAULT_RETRY_DELAY_S = 2.0


class UpdatePoller:
    """Long-polls ``getUpdates`` and owns the offset cursor.

    The cursor only moves forward: after a successful batch it becomes
    ``max(update_id) + 1``, and a failed fetch leaves it untouched so the
    next attempt asks for the same updates again.
    """

    def __init__(
        self,
        bot: BotClient,
        *,
        offset: int = 0,
        timeout_s: int = DEFAULT_POLL_TIMEOUT_S,
        limit: int = MAX_UPDATES_LIMIT,
        allowed_updates: Sequence[str] | None = None,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if offset < 0:
            raise ValueError("offset must be >= 0")
        self._bot = bot
        self._offset = offset
        self._timeout_s = timeout_s
        self._limit = limit
        self._allowed_updates = (
            list(allowed_updates) if allowed_updates is not None else None
        )
        self._retry_delay_s = retry_delay_s
        self._sleep = sleep

    @property
    def offset(self) -> int:
        return self._offset

    async def fetch(self, *, timeout_s: int | None = None) -> list[Update]:
        """Fetch one batch and advance the cursor past it.

        Errors propagate with the cursor unchanged. Updates below the cursor
        are dropped so nothing is handed out twice.
        """
        cursor = self._offset
        updates = await self._bot.get_updates(
            offset=cursor,
            timeout_s=self._timeout_s if timeout_s is None else timeout_s,
            limit=self._limit,
            allowed_updates=self._allowed_updates,
        )
        fresh = [upd for upd in updates if upd.update_id >= cursor]
        if len(fresh) != len(updates):
            logger.warning(
                "poller.stale_updates",
                offset=cursor,
                dropped=len(updates) - len(fresh),
            )
        if fresh:
            self._offset = max(cursor, max(upd.update_id for upd in fresh) + 1)
        return fresh

    async def drain_backlog(self) -> int:
        """Skip everything already pending so only new activity is handled."""
        drained = 0
        while True:
            try:
                updates = await self.fetch(timeout_s=0)
            except (TelegramNetworkError, TelegramDecodeError, TelegramApiError) as exc:
                logger.info(
                    "poller.backlog.failed",
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )
                return drained
            if not updates:
                if drained:
                    logger.info(
                        "poller.backlog.drained", count=drained, offset=self._offset
                    )
                return drained
            drained += len(updates)

    async def updates(self) -> AsyncIterator[Update]:
        """Yield updates forever, in the order the server returned them."""
        while True:
            try:
                batch = await self.fetch()
            except TelegramRetryAfter as exc:
                logger.warning(
                    "poller.rate_limited",
                    offset=self._offset,
                    retry_after=exc.retry_after,
                )
                await self._sleep(exc.retry_after)
                continue
            except (TelegramNetworkError, TelegramDecodeError) as exc:
                logger.info(
                    "poller.fetch_failed",
                    offset=self._offset,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )
                await self._sleep(self._retry_delay_s)
                continue
            except TelegramApiError as exc:
                logger.error(
                    "poller.api_error",
                    offset=self._offset,
                    error_code=exc.error_code,
                    description=exc.description,
                )
                await self._sleep(self._retry_delay_s)
                continue
            if batch:
                logger.debug(
                    "poller.batch",
                    count=len(batch),
                    first=batch[0].update_id,
                    offset=self._offset,
                )
            for update in batch:
                yield update
