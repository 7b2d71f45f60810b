import json
from collections.abc import Callable

import httpx
import pytest

from telepoll.telegram.api_models import Message, User
from telepoll.telegram.client_api import HttpBotClient
from telepoll.telegram.errors import (
    RequestValidationError,
    TelegramApiError,
    TelegramDecodeError,
    TelegramNetworkError,
    TelegramRetryAfter,
)
from telepoll.telegram.markup import new_v_inline_keyboard
from telepoll.telegram.requests import GetMe, new_message

TOKEN = "123456:ABCdefGhIJKlmnOPQrstUVwxyz"


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[HttpBotClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return HttpBotClient(TOKEN, http_client=http_client), seen


def _ok(result: object) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(200, json={"ok": True, "result": result})


def test_empty_token_is_rejected() -> None:
    with pytest.raises(ValueError, match="token is empty"):
        HttpBotClient("")


@pytest.mark.anyio
async def test_get_me_decodes_user() -> None:
    bot, seen = _client(
        _ok({"id": 1, "is_bot": True, "first_name": "B", "username": "b_bot"})
    )

    me = await bot.get_me()

    assert me == User(id=1, is_bot=True, first_name="B", username="b_bot")
    assert seen[0].url.path == f"/bot{TOKEN}/getMe"
    assert seen[0].method == "POST"


@pytest.mark.anyio
async def test_call_posts_json_params_and_decodes_result() -> None:
    bot, seen = _client(
        _ok({"message_id": 8, "chat": {"id": 123, "type": "private"}, "text": "hi"})
    )

    result = await bot.call(new_message(123, "hi", reply_to_message_id=2))

    assert isinstance(result, Message)
    assert result.message_id == 8
    assert seen[0].url.path.endswith("/sendMessage")
    assert json.loads(seen[0].content) == {
        "chat_id": 123,
        "text": "hi",
        "reply_to_message_id": 2,
    }


@pytest.mark.anyio
async def test_invalid_request_never_reaches_the_network() -> None:
    bot, seen = _client(_ok(True))

    with pytest.raises(RequestValidationError):
        await bot.call(new_message(123, ""))

    assert seen == []


@pytest.mark.anyio
async def test_api_error_carries_code_and_description() -> None:
    bot, _ = _client(
        lambda request: httpx.Response(
            400,
            json={
                "ok": False,
                "error_code": 400,
                "description": "Bad Request: chat not found",
            },
        )
    )

    with pytest.raises(TelegramApiError) as exc_info:
        await bot.call(new_message(1, "hi"))

    assert exc_info.value.error_code == 400
    assert exc_info.value.description == "Bad Request: chat not found"
    assert not isinstance(exc_info.value, TelegramRetryAfter)


@pytest.mark.anyio
async def test_rate_limit_raises_retry_after() -> None:
    bot, _ = _client(
        lambda request: httpx.Response(
            429,
            json={
                "ok": False,
                "error_code": 429,
                "description": "Too Many Requests: retry after 3",
                "parameters": {"retry_after": 3},
            },
        )
    )

    with pytest.raises(TelegramRetryAfter) as exc_info:
        await bot.call(new_message(1, "hi"))

    assert exc_info.value.retry_after == 3.0
    assert exc_info.value.error_code == 429


@pytest.mark.anyio
async def test_rate_limit_without_hint_defaults_to_five_seconds() -> None:
    bot, _ = _client(
        lambda request: httpx.Response(429, json={"ok": False, "error_code": 429})
    )

    with pytest.raises(TelegramRetryAfter) as exc_info:
        await bot.get_me()

    assert exc_info.value.retry_after == 5.0


@pytest.mark.anyio
async def test_transport_failure_is_a_network_error() -> None:
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    bot, _ = _client(fail)

    with pytest.raises(TelegramNetworkError, match="getMe failed"):
        await bot.get_me()


@pytest.mark.anyio
async def test_server_error_without_envelope_is_a_network_error() -> None:
    bot, _ = _client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(TelegramNetworkError, match="HTTP 502"):
        await bot.get_me()


@pytest.mark.anyio
async def test_client_error_with_html_body_is_an_api_error() -> None:
    bot, _ = _client(lambda request: httpx.Response(404, text="<html>nope</html>"))

    with pytest.raises(TelegramApiError) as exc_info:
        await bot.get_me()

    assert exc_info.value.error_code == 404


@pytest.mark.anyio
async def test_unexpected_result_shape_is_a_decode_error() -> None:
    bot, _ = _client(_ok({"first_name": "no id"}))

    with pytest.raises(TelegramDecodeError):
        await bot.call(GetMe())


@pytest.mark.anyio
async def test_get_updates_sends_cursor_and_decodes_batch() -> None:
    bot, seen = _client(
        _ok(
            [
                {
                    "update_id": 10,
                    "message": {"message_id": 1, "chat": {"id": 5}, "text": "a"},
                },
                {"update_id": 11, "inline_query": {"id": "q", "from": {"id": 2}}},
            ]
        )
    )

    updates = await bot.get_updates(
        offset=10, timeout_s=30, allowed_updates=["message", "inline_query"]
    )

    assert [u.update_id for u in updates] == [10, 11]
    assert [u.kind for u in updates] == ["message", "inline_query"]
    assert json.loads(seen[0].content) == {
        "offset": 10,
        "limit": 100,
        "timeout": 30,
        "allowed_updates": ["message", "inline_query"],
    }


@pytest.mark.anyio
async def test_get_updates_keeps_undecodable_update_ids() -> None:
    bot, _ = _client(
        _ok(
            [
                {"update_id": 20, "message": {"message_id": "bad"}},
                {"message": {"message_id": 1, "chat": {"id": 5}}},
                {"update_id": 21, "poll": {"id": "p"}},
            ]
        )
    )

    updates = await bot.get_updates(offset=20)

    assert [u.update_id for u in updates] == [20, 21]
    assert all(u.kind is None for u in updates)


@pytest.mark.anyio
async def test_get_updates_rejects_non_list_result() -> None:
    bot, _ = _client(_ok({"update_id": 1}))

    with pytest.raises(TelegramDecodeError):
        await bot.get_updates()


@pytest.mark.anyio
async def test_close_leaves_injected_http_client_open() -> None:
    bot, _ = _client(_ok(True))

    await bot.close()

    assert await bot.send_chat_action(1, "typing") is True


@pytest.mark.anyio
async def test_send_message_helper_builds_request() -> None:
    bot, seen = _client(
        _ok({"message_id": 3, "chat": {"id": 7}, "text": "<b>hi</b>"})
    )

    message = await bot.send_message(
        7,
        "<b>hi</b>",
        reply_to_message_id=2,
        disable_notification=True,
        parse_mode="HTML",
        reply_markup=new_v_inline_keyboard("k:", ["A"], ["a"]),
    )

    assert message.message_id == 3
    assert seen[0].url.path.endswith("/sendMessage")
    assert json.loads(seen[0].content) == {
        "chat_id": 7,
        "text": "<b>hi</b>",
        "parse_mode": "HTML",
        "reply_to_message_id": 2,
        "disable_notification": True,
        "reply_markup": {"inline_keyboard": [[{"text": "A", "callback_data": "k:a"}]]},
    }


@pytest.mark.anyio
async def test_edit_message_text_helper_accepts_bare_true() -> None:
    bot, seen = _client(_ok(True))

    result = await bot.edit_message_text(7, 3, "changed")

    assert result is True
    assert seen[0].url.path.endswith("/editMessageText")
    assert json.loads(seen[0].content) == {
        "chat_id": 7,
        "message_id": 3,
        "text": "changed",
    }


@pytest.mark.anyio
async def test_edit_message_text_helper_decodes_message() -> None:
    bot, _ = _client(_ok({"message_id": 3, "chat": {"id": 7}, "text": "changed"}))

    result = await bot.edit_message_text(7, 3, "changed")

    assert isinstance(result, Message)
    assert result.text == "changed"


@pytest.mark.anyio
async def test_answer_callback_query_helper() -> None:
    bot, seen = _client(_ok(True))

    assert await bot.answer_callback_query("cb-1", "saved", show_alert=True) is True
    assert seen[0].url.path.endswith("/answerCallbackQuery")
    assert json.loads(seen[0].content) == {
        "callback_query_id": "cb-1",
        "text": "saved",
        "show_alert": True,
    }


@pytest.mark.anyio
async def test_helpers_validate_before_sending() -> None:
    bot, seen = _client(_ok(True))

    with pytest.raises(RequestValidationError):
        await bot.send_message(7, "")
    with pytest.raises(RequestValidationError):
        await bot.answer_callback_query("")

    assert seen == []
