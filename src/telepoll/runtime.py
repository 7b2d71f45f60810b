from __future__ import annotations

import signal
from dataclasses import dataclass

import anyio

from .bots import get_handlers
from .logging import get_logger
from .settings import TelepollSettings
from .telegram.api_models import User
from .telegram.client_api import BotClient, HttpBotClient
from .telegram.dispatch import Dispatcher, Handlers
from .telegram.errors import TelegramApiError, TelegramAuthError
from .telegram.pipeline import run_pipeline
from .telegram.poller import UpdatePoller

logger = get_logger(__name__)

_AUTH_ERROR_CODES = frozenset({401, 404})


@dataclass(frozen=True, slots=True)
class BotConfig:
    bot: BotClient
    handlers: Handlers
    settings: TelepollSettings


async def authorize(bot: BotClient) -> User:
    """Check the token with ``getMe``; a rejected token is fatal."""
    try:
        me = await bot.get_me()
    except TelegramApiError as exc:
        if exc.error_code in _AUTH_ERROR_CODES:
            raise TelegramAuthError(
                f"Telegram rejected the bot token ({exc.description or exc.error_code})."
            ) from exc
        raise
    logger.info("startup.authorized", username=me.username, bot_id=me.id)
    return me


def build_config(
    settings: TelepollSettings, *, bot: BotClient | None = None
) -> BotConfig:
    if bot is None:
        try:
            bot = HttpBotClient(
                settings.bot_token,
                base_url=settings.api.base_url,
                timeout_s=settings.api.request_timeout_s,
            )
        except ValueError as exc:
            raise TelegramAuthError(str(exc)) from exc
    return BotConfig(bot=bot, handlers=get_handlers(settings.bot), settings=settings)


async def _stop_on_signal(stop: anyio.Event) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            logger.info("shutdown.signal", signal=signal.Signals(signum).name)
            stop.set()
            return


async def run_main_loop(
    cfg: BotConfig,
    *,
    stop: anyio.Event | None = None,
    handle_signals: bool = False,
) -> int:
    polling = cfg.settings.polling
    stop = stop or anyio.Event()
    try:
        me = await authorize(cfg.bot)
        poller = UpdatePoller(
            cfg.bot,
            timeout_s=polling.timeout_s,
            limit=polling.limit,
            allowed_updates=polling.allowed_updates,
            retry_delay_s=polling.retry_delay_s,
        )
        if polling.drop_pending_updates:
            await poller.drain_backlog()
        dispatcher = Dispatcher(cfg.bot, cfg.handlers, bot_username=me.username)
        logger.info(
            "startup.polling",
            bot=cfg.settings.bot,
            offset=poller.offset,
            timeout_s=polling.timeout_s,
        )
        async with anyio.create_task_group() as tg:
            if handle_signals:
                tg.start_soon(_stop_on_signal, stop)
            handled = await run_pipeline(
                poller,
                dispatcher,
                stop=stop,
                buffer_size=polling.buffer_size,
            )
            tg.cancel_scope.cancel()
        return handled
    finally:
        await cfg.bot.close()
