"""Outbound request value objects.

Each request is composed from a small set of shared values instead of one
flat struct per method: a :class:`Target` addressing a conversation,
:class:`MessageOptions` carrying the options every outgoing message accepts,
and the per-method payload itself. Requests validate themselves before any
network I/O happens and render their own wire parameters.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

import msgspec

from ..constants import TELEGRAM_HARD_LIMIT
from .api_models import Message, Update, User
from .constants import (
    CHAT_ACTIONS,
    MAX_UPDATES_LIMIT,
    PARSE_MODES,
    UPDATE_KINDS,
    ChatAction,
    ParseMode,
)
from .errors import RequestValidationError
from .inline_results import InlineQueryResult, validate_inline_result
from .markup import InlineKeyboardMarkup, ReplyMarkup, encode_reply_markup

MAX_INLINE_RESULTS = 50
MAX_CALLBACK_ANSWER = 200


def _validate_parse_mode(parse_mode: str | None) -> None:
    if parse_mode is not None and parse_mode not in PARSE_MODES:
        raise RequestValidationError(
            f"unknown parse_mode {parse_mode!r}; expected one of "
            + ", ".join(sorted(PARSE_MODES))
        )


def _validate_text(text: str, *, label: str = "text") -> None:
    if not text or not text.strip():
        raise RequestValidationError(f"{label} is required")
    if len(text) > TELEGRAM_HARD_LIMIT:
        raise RequestValidationError(
            f"{label} is {len(text)} characters; limit is {TELEGRAM_HARD_LIMIT}"
        )


def _validate_chat_id(chat_id: int | str | None, *, label: str = "chat_id") -> None:
    if chat_id is None or isinstance(chat_id, bool):
        raise RequestValidationError(f"{label} is required")
    if isinstance(chat_id, str) and not chat_id.strip():
        raise RequestValidationError(f"{label} is required")


@dataclass(frozen=True, slots=True)
class Target:
    chat_id: int | str

    def validate(self) -> None:
        _validate_chat_id(self.chat_id)

    def params(self) -> dict[str, Any]:
        return {"chat_id": self.chat_id}


@dataclass(frozen=True, slots=True)
class MessageOptions:
    reply_to_message_id: int | None = None
    disable_notification: bool | None = None
    reply_markup: ReplyMarkup | None = None

    def validate(self) -> None:
        if self.reply_markup is not None:
            encode_reply_markup(self.reply_markup)

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.reply_to_message_id is not None:
            params["reply_to_message_id"] = self.reply_to_message_id
        if self.disable_notification is not None:
            params["disable_notification"] = self.disable_notification
        if self.reply_markup is not None:
            params["reply_markup"] = encode_reply_markup(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class EditTarget:
    chat_id: int | str | None = None
    message_id: int | None = None
    inline_message_id: str | None = None

    def validate(self) -> None:
        if self.inline_message_id is not None:
            if self.chat_id is not None or self.message_id is not None:
                raise RequestValidationError(
                    "use either inline_message_id or chat_id/message_id"
                )
            if not self.inline_message_id:
                raise RequestValidationError("inline_message_id is required")
            return
        _validate_chat_id(self.chat_id)
        if self.message_id is None:
            raise RequestValidationError("message_id is required")

    def params(self) -> dict[str, Any]:
        if self.inline_message_id is not None:
            return {"inline_message_id": self.inline_message_id}
        return {"chat_id": self.chat_id, "message_id": self.message_id}


class _Request:
    __slots__ = ()

    method: str = ""
    result_type: Any = Any

    def validate(self) -> None:
        return None

    def params(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True, slots=True)
class GetMe(_Request):
    method = "getMe"
    result_type = User


@dataclass(frozen=True, slots=True)
class GetUpdates(_Request):
    offset: int = 0
    limit: int = MAX_UPDATES_LIMIT
    timeout: int = 0
    allowed_updates: tuple[str, ...] | None = None

    method = "getUpdates"
    result_type = list[Update]

    def validate(self) -> None:
        if self.offset < 0:
            raise RequestValidationError("offset must be >= 0")
        if not 1 <= self.limit <= MAX_UPDATES_LIMIT:
            raise RequestValidationError(
                f"limit must be between 1 and {MAX_UPDATES_LIMIT}"
            )
        if self.timeout < 0:
            raise RequestValidationError("timeout must be >= 0")
        if self.allowed_updates is not None:
            unknown = sorted(set(self.allowed_updates) - set(UPDATE_KINDS))
            if unknown:
                raise RequestValidationError(
                    "unknown allowed_updates: " + ", ".join(unknown)
                )

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "offset": self.offset,
            "limit": self.limit,
            "timeout": self.timeout,
        }
        if self.allowed_updates is not None:
            params["allowed_updates"] = list(self.allowed_updates)
        return params


@dataclass(frozen=True, slots=True)
class SendMessage(_Request):
    target: Target
    text: str
    parse_mode: ParseMode | None = None
    disable_web_page_preview: bool | None = None
    options: MessageOptions = field(default_factory=MessageOptions)

    method = "sendMessage"
    result_type = Message

    def validate(self) -> None:
        self.target.validate()
        _validate_text(self.text)
        _validate_parse_mode(self.parse_mode)
        self.options.validate()

    def params(self) -> dict[str, Any]:
        params = self.target.params()
        params["text"] = self.text
        if self.parse_mode is not None:
            params["parse_mode"] = self.parse_mode
        if self.disable_web_page_preview is not None:
            params["disable_web_page_preview"] = self.disable_web_page_preview
        params.update(self.options.params())
        return params


@dataclass(frozen=True, slots=True)
class ForwardMessage(_Request):
    target: Target
    from_chat_id: int | str
    message_id: int
    disable_notification: bool | None = None

    method = "forwardMessage"
    result_type = Message

    def validate(self) -> None:
        self.target.validate()
        _validate_chat_id(self.from_chat_id, label="from_chat_id")

    def params(self) -> dict[str, Any]:
        params = self.target.params()
        params["from_chat_id"] = self.from_chat_id
        params["message_id"] = self.message_id
        if self.disable_notification is not None:
            params["disable_notification"] = self.disable_notification
        return params


@dataclass(frozen=True, slots=True)
class SendChatAction(_Request):
    target: Target
    action: ChatAction

    method = "sendChatAction"
    result_type = bool

    def validate(self) -> None:
        self.target.validate()
        if self.action not in CHAT_ACTIONS:
            raise RequestValidationError(f"unknown chat action {self.action!r}")

    def params(self) -> dict[str, Any]:
        params = self.target.params()
        params["action"] = self.action
        return params


@dataclass(frozen=True, slots=True)
class EditMessageText(_Request):
    ref: EditTarget
    text: str
    parse_mode: ParseMode | None = None
    disable_web_page_preview: bool | None = None
    reply_markup: InlineKeyboardMarkup | None = None

    method = "editMessageText"
    # inline messages come back as a bare ``true``
    result_type = Message | bool

    def validate(self) -> None:
        self.ref.validate()
        _validate_text(self.text)
        _validate_parse_mode(self.parse_mode)
        if self.reply_markup is not None:
            if not isinstance(self.reply_markup, InlineKeyboardMarkup):
                raise RequestValidationError(
                    "edited messages only accept an inline keyboard"
                )
            encode_reply_markup(self.reply_markup)

    def params(self) -> dict[str, Any]:
        params = self.ref.params()
        params["text"] = self.text
        if self.parse_mode is not None:
            params["parse_mode"] = self.parse_mode
        if self.disable_web_page_preview is not None:
            params["disable_web_page_preview"] = self.disable_web_page_preview
        if self.reply_markup is not None:
            params["reply_markup"] = encode_reply_markup(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class EditMessageReplyMarkup(_Request):
    ref: EditTarget
    reply_markup: InlineKeyboardMarkup | None = None

    method = "editMessageReplyMarkup"
    result_type = Message | bool

    def validate(self) -> None:
        self.ref.validate()
        if self.reply_markup is not None:
            encode_reply_markup(self.reply_markup)

    def params(self) -> dict[str, Any]:
        params = self.ref.params()
        if self.reply_markup is not None:
            params["reply_markup"] = encode_reply_markup(self.reply_markup)
        return params


@dataclass(frozen=True, slots=True)
class AnswerCallbackQuery(_Request):
    callback_query_id: str
    text: str | None = None
    show_alert: bool | None = None
    url: str | None = None
    cache_time: int | None = None

    method = "answerCallbackQuery"
    result_type = bool

    def validate(self) -> None:
        if not self.callback_query_id:
            raise RequestValidationError("callback_query_id is required")
        if self.text is not None and len(self.text) > MAX_CALLBACK_ANSWER:
            raise RequestValidationError(
                f"callback answer is limited to {MAX_CALLBACK_ANSWER} characters"
            )
        if self.cache_time is not None and self.cache_time < 0:
            raise RequestValidationError("cache_time must be >= 0")

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"callback_query_id": self.callback_query_id}
        if self.text is not None:
            params["text"] = self.text
        if self.show_alert is not None:
            params["show_alert"] = self.show_alert
        if self.url is not None:
            params["url"] = self.url
        if self.cache_time is not None:
            params["cache_time"] = self.cache_time
        return params


@dataclass(frozen=True, slots=True)
class AnswerInlineQuery(_Request):
    inline_query_id: str
    results: tuple[InlineQueryResult, ...]
    cache_time: int | None = None
    is_personal: bool | None = None
    next_offset: str | None = None

    method = "answerInlineQuery"
    result_type = bool

    def validate(self) -> None:
        if not self.inline_query_id:
            raise RequestValidationError("inline_query_id is required")
        if len(self.results) > MAX_INLINE_RESULTS:
            raise RequestValidationError(
                f"at most {MAX_INLINE_RESULTS} inline results are allowed"
            )
        ids = [result.id for result in self.results]
        if len(set(ids)) != len(ids):
            raise RequestValidationError("inline result ids must be unique")
        for result in self.results:
            validate_inline_result(result)

    def params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "inline_query_id": self.inline_query_id,
            "results": [msgspec.to_builtins(result) for result in self.results],
        }
        if self.cache_time is not None:
            params["cache_time"] = self.cache_time
        if self.is_personal is not None:
            params["is_personal"] = self.is_personal
        if self.next_offset is not None:
            params["next_offset"] = self.next_offset
        return params


OutboundAction: TypeAlias = (
    SendMessage
    | ForwardMessage
    | SendChatAction
    | EditMessageText
    | EditMessageReplyMarkup
    | AnswerCallbackQuery
    | AnswerInlineQuery
)
Request: TypeAlias = GetMe | GetUpdates | OutboundAction


def new_message(
    chat_id: int | str,
    text: str,
    *,
    parse_mode: ParseMode | None = None,
    reply_to_message_id: int | None = None,
    reply_markup: ReplyMarkup | None = None,
) -> SendMessage:
    return SendMessage(
        target=Target(chat_id),
        text=text,
        parse_mode=parse_mode,
        options=MessageOptions(
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
        ),
    )


def new_message_format(chat_id: int | str, template: str, *args: Any) -> SendMessage:
    return new_message(chat_id, template % args if args else template)


def clone_message(
    message: Message, options: MessageOptions | None = None
) -> SendMessage | None:
    """Echo a received message's text back to the chat it came from."""
    if message.text is None:
        return None
    return SendMessage(
        target=Target(message.chat.id),
        text=message.text,
        options=options if options is not None else MessageOptions(),
    )


def new_edit_message_text(
    chat_id: int | str,
    message_id: int,
    text: str,
    *,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> EditMessageText:
    return EditMessageText(
        ref=EditTarget(chat_id=chat_id, message_id=message_id),
        text=text,
        reply_markup=reply_markup,
    )


def new_answer_callback(
    callback_query_id: str, text: str | None = None, *, show_alert: bool = False
) -> AnswerCallbackQuery:
    return AnswerCallbackQuery(
        callback_query_id=callback_query_id,
        text=text,
        show_alert=show_alert or None,
    )


def new_chat_action(chat_id: int | str, action: ChatAction) -> SendChatAction:
    return SendChatAction(target=Target(chat_id), action=action)


def new_forward(
    chat_id: int | str, from_chat_id: int | str, message_id: int
) -> ForwardMessage:
    return ForwardMessage(
        target=Target(chat_id), from_chat_id=from_chat_id, message_id=message_id
    )


def new_answer_inline_query(
    inline_query_id: str, results: Sequence[InlineQueryResult]
) -> AnswerInlineQuery:
    return AnswerInlineQuery(inline_query_id=inline_query_id, results=tuple(results))
