from __future__ import annotations

from typing import Any, Protocol, TypeVar

import httpx
import msgspec

from ..logging import get_logger
from .api_models import Message, Update, User
from .constants import API_BASE_URL, MAX_UPDATES_LIMIT, ChatAction, ParseMode
from .errors import (
    TelegramApiError,
    TelegramDecodeError,
    TelegramNetworkError,
    TelegramRetryAfter,
    retry_after_from_payload,
)
from .markup import InlineKeyboardMarkup, ReplyMarkup
from .requests import (
    AnswerCallbackQuery,
    EditMessageText,
    EditTarget,
    GetMe,
    GetUpdates,
    MessageOptions,
    Request,
    SendChatAction,
    SendMessage,
    Target,
)

logger = get_logger(__name__)

T = TypeVar("T")

# extra slack on top of the long-poll timeout before httpx gives up
LONG_POLL_GRACE_S = 10.0


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def call(self, request: Request) -> Any: ...

    async def get_me(self) -> User: ...

    async def get_updates(
        self,
        offset: int = 0,
        timeout_s: int = 0,
        limit: int = MAX_UPDATES_LIMIT,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]: ...


class HttpBotClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str = API_BASE_URL,
        timeout_s: float = 120,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self._timeout_s = timeout_s
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_http_client = http_client is None

    async def close(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    def _parse_telegram_envelope(
        self,
        *,
        method: str,
        resp: httpx.Response,
        payload: Any,
    ) -> Any:
        if not isinstance(payload, dict):
            logger.error(
                "telegram.invalid_payload",
                method=method,
                url=str(resp.request.url),
                payload=payload,
            )
            raise TelegramNetworkError(method, "response is not a JSON object")

        if not payload.get("ok"):
            error_code = payload.get("error_code")
            description = payload.get("description")
            if error_code == 429 or resp.status_code == 429:
                retry_after = retry_after_from_payload(payload)
                retry_after = 5.0 if retry_after is None else retry_after
                logger.warning(
                    "telegram.rate_limited",
                    method=method,
                    url=str(resp.request.url),
                    retry_after=retry_after,
                )
                raise TelegramRetryAfter(method, retry_after, description)
            logger.error(
                "telegram.api_error",
                method=method,
                url=str(resp.request.url),
                error_code=error_code,
                description=description,
            )
            raise TelegramApiError(
                method,
                error_code=error_code if isinstance(error_code, int) else None,
                description=description if isinstance(description, str) else None,
                parameters=payload.get("parameters")
                if isinstance(payload.get("parameters"), dict)
                else None,
            )

        logger.debug("telegram.response", method=method, payload=payload)
        return payload.get("result")

    async def _request(
        self,
        method: str,
        json: dict[str, Any],
        *,
        timeout_s: float | None = None,
    ) -> Any:
        logger.debug("telegram.request", method=method, payload=json)
        try:
            resp = await self._http_client.post(
                f"{self._base}/{method}",
                json=json,
                timeout=timeout_s if timeout_s is not None else self._timeout_s,
            )
        except httpx.HTTPError as exc:
            url = getattr(exc.request, "url", None) if _has_request(exc) else None
            logger.error(
                "telegram.network_error",
                method=method,
                url=str(url) if url is not None else None,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise TelegramNetworkError(
                method, str(exc) or exc.__class__.__name__
            ) from exc

        try:
            response_payload = resp.json()
        except ValueError as exc:
            body = resp.text
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                url=str(resp.request.url),
                error=str(exc),
                error_type=exc.__class__.__name__,
                body=body,
            )
            if resp.status_code >= 500 or resp.is_success:
                raise TelegramNetworkError(
                    method, f"HTTP {resp.status_code} with undecodable body"
                ) from exc
            raise TelegramApiError(
                method, error_code=resp.status_code, description=body or None
            ) from exc

        if resp.status_code >= 500 and not (
            isinstance(response_payload, dict) and "error_code" in response_payload
        ):
            logger.error(
                "telegram.http_error",
                method=method,
                status=resp.status_code,
                url=str(resp.request.url),
                body=resp.text,
            )
            raise TelegramNetworkError(method, f"HTTP {resp.status_code}")

        return self._parse_telegram_envelope(
            method=method,
            resp=resp,
            payload=response_payload,
        )

    def _decode_result(
        self,
        *,
        method: str,
        payload: Any,
        model: type[T] | Any,
    ) -> T:
        try:
            return msgspec.convert(payload, type=model)
        except msgspec.ValidationError as exc:
            logger.error(
                "telegram.decode_error",
                method=method,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise TelegramDecodeError(f"{method}: {exc}") from exc

    async def call(self, request: Request) -> Any:
        request.validate()
        result = await self._request(request.method, request.params())
        return self._decode_result(
            method=request.method, payload=result, model=request.result_type
        )

    async def get_me(self) -> User:
        return await self.call(GetMe())

    async def get_updates(
        self,
        offset: int = 0,
        timeout_s: int = 0,
        limit: int = MAX_UPDATES_LIMIT,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]:
        request = GetUpdates(
            offset=offset,
            limit=limit,
            timeout=timeout_s,
            allowed_updates=tuple(allowed_updates)
            if allowed_updates is not None
            else None,
        )
        request.validate()
        result = await self._request(
            request.method,
            request.params(),
            timeout_s=max(self._timeout_s, timeout_s + LONG_POLL_GRACE_S),
        )
        if not isinstance(result, list):
            logger.error(
                "telegram.decode_error",
                method=request.method,
                error="result is not a list",
            )
            raise TelegramDecodeError(f"{request.method}: result is not a list")
        return [
            update
            for update in (self._decode_update(item) for item in result)
            if update is not None
        ]

    def _decode_update(self, item: Any) -> Update | None:
        try:
            return msgspec.convert(item, type=Update)
        except msgspec.ValidationError as exc:
            update_id = item.get("update_id") if isinstance(item, dict) else None
            if isinstance(update_id, bool) or not isinstance(update_id, int):
                logger.error(
                    "telegram.update_dropped",
                    error=str(exc),
                    payload=item,
                )
                return None
            logger.warning(
                "telegram.update_undecodable",
                update_id=update_id,
                error=str(exc),
            )
            return Update(update_id=update_id)

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_to_message_id: int | None = None,
        disable_notification: bool | None = None,
        parse_mode: ParseMode | None = None,
        reply_markup: ReplyMarkup | None = None,
    ) -> Message:
        return await self.call(
            SendMessage(
                target=Target(chat_id),
                text=text,
                parse_mode=parse_mode,
                options=MessageOptions(
                    reply_to_message_id=reply_to_message_id,
                    disable_notification=disable_notification,
                    reply_markup=reply_markup,
                ),
            )
        )

    async def edit_message_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        parse_mode: ParseMode | None = None,
        reply_markup: InlineKeyboardMarkup | None = None,
    ) -> Message | bool:
        return await self.call(
            EditMessageText(
                ref=EditTarget(chat_id=chat_id, message_id=message_id),
                text=text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
            )
        )

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: str | None = None,
        show_alert: bool | None = None,
    ) -> bool:
        return await self.call(
            AnswerCallbackQuery(
                callback_query_id=callback_query_id,
                text=text,
                show_alert=show_alert,
            )
        )

    async def send_chat_action(self, chat_id: int | str, action: ChatAction) -> bool:
        return await self.call(SendChatAction(target=Target(chat_id), action=action))


def _has_request(exc: httpx.HTTPError) -> bool:
    # httpx raises RuntimeError from ``.request`` when none was attached
    try:
        exc.request
    except RuntimeError:
        return False
    return True
