from functools import partial

import anyio
import pytest

from telepoll.runtime import authorize, build_config, run_main_loop
from telepoll.settings import validate_settings_data
from telepoll.telegram.api_models import User
from telepoll.telegram.client_api import HttpBotClient
from telepoll.telegram.errors import (
    TelegramApiError,
    TelegramAuthError,
    TelegramNetworkError,
)
from tests.telegram_fakes import FakeBot, make_update


class _RejectedBot(FakeBot):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def get_me(self) -> User:
        raise self.error


def _settings(**polling):
    return validate_settings_data({"bot_token": "123:abc", "polling": polling})


@pytest.mark.anyio
async def test_authorize_returns_bot_identity() -> None:
    bot = FakeBot()

    me = await authorize(bot)

    assert me.username == "test_bot"


@pytest.mark.anyio
@pytest.mark.parametrize("code", [401, 404])
async def test_rejected_token_is_an_auth_error(code: int) -> None:
    bot = _RejectedBot(
        TelegramApiError("getMe", error_code=code, description="Unauthorized")
    )

    with pytest.raises(TelegramAuthError, match="Unauthorized"):
        await authorize(bot)


@pytest.mark.anyio
async def test_other_startup_errors_propagate() -> None:
    bot = _RejectedBot(TelegramNetworkError("getMe", "connection refused"))

    with pytest.raises(TelegramNetworkError):
        await authorize(bot)


def test_build_config_uses_configured_bot() -> None:
    settings = validate_settings_data({"bot_token": "123:abc", "bot": "greeting"})

    cfg = build_config(settings)

    assert isinstance(cfg.bot, HttpBotClient)
    assert cfg.handlers.message is not None
    assert cfg.handlers.callback_query is None


@pytest.mark.anyio
async def test_run_main_loop_handles_updates_until_stopped() -> None:
    bot = FakeBot([[make_update(1, "hi"), make_update(2, "/start go")]])
    cfg = build_config(_settings(timeout_s=30), bot=bot)
    stop = anyio.Event()
    handled: list[int] = []

    async def run() -> None:
        handled.append(await run_main_loop(cfg, stop=stop))

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(run)
            await bot.exhausted.wait()
            stop.set()

    assert handled == [2]
    assert [r.text for r in bot.requests] == [  # type: ignore[union-attr]
        "hi",
        "received start with arg go",
    ]
    assert bot.timeouts == [30, 30]
    assert bot.closed


@pytest.mark.anyio
async def test_drop_pending_skips_backlog_before_polling() -> None:
    bot = FakeBot([[make_update(1, "old"), make_update(2, "older")]])
    cfg = build_config(_settings(drop_pending_updates=True), bot=bot)
    stop = anyio.Event()

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(partial(run_main_loop, cfg, stop=stop))
            while len(bot.offsets) < 3:
                await anyio.sleep(0.01)
            stop.set()

    assert bot.requests == []
    assert bot.offsets == [0, 3, 3]
    assert bot.timeouts[:2] == [0, 0]
    assert bot.closed


@pytest.mark.anyio
async def test_auth_failure_still_closes_the_client() -> None:
    bot = _RejectedBot(
        TelegramApiError("getMe", error_code=401, description="Unauthorized")
    )
    cfg = build_config(_settings(), bot=bot)

    with pytest.raises(TelegramAuthError):
        await run_main_loop(cfg)

    assert bot.closed
