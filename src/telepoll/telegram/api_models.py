"""Msgspec models for the Telegram Bot API objects the bot receives."""

from __future__ import annotations

from typing import Literal

import msgspec

from .markup import InlineKeyboardMarkup

UpdateKind = Literal[
    "message",
    "edited_message",
    "callback_query",
    "inline_query",
    "chosen_inline_result",
]


class User(msgspec.Struct, omit_defaults=True):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class Chat(msgspec.Struct, omit_defaults=True):
    id: int
    type: str = "private"
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class MessageEntity(msgspec.Struct, omit_defaults=True):
    type: str
    offset: int
    length: int
    url: str | None = None
    user: User | None = None


class Location(msgspec.Struct, omit_defaults=True):
    longitude: float
    latitude: float


class Contact(msgspec.Struct, omit_defaults=True):
    phone_number: str
    first_name: str
    last_name: str | None = None
    user_id: int | None = None


class Message(msgspec.Struct, omit_defaults=True):
    message_id: int
    chat: Chat
    date: int = 0
    from_: User | None = msgspec.field(default=None, name="from")
    text: str | None = None
    caption: str | None = None
    entities: list[MessageEntity] | None = None
    reply_to_message: Message | None = None
    location: Location | None = None
    contact: Contact | None = None
    reply_markup: InlineKeyboardMarkup | None = None


class CallbackQuery(msgspec.Struct, omit_defaults=True):
    id: str
    from_: User = msgspec.field(name="from")
    message: Message | None = None
    inline_message_id: str | None = None
    chat_instance: str | None = None
    data: str | None = None


class InlineQuery(msgspec.Struct, omit_defaults=True):
    id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    offset: str = ""
    location: Location | None = None


class ChosenInlineResult(msgspec.Struct, omit_defaults=True):
    result_id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    location: Location | None = None
    inline_message_id: str | None = None


class Update(msgspec.Struct, omit_defaults=True):
    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    callback_query: CallbackQuery | None = None
    inline_query: InlineQuery | None = None
    chosen_inline_result: ChosenInlineResult | None = None

    def __post_init__(self) -> None:
        populated = [
            name
            for name in (
                "message",
                "edited_message",
                "callback_query",
                "inline_query",
                "chosen_inline_result",
            )
            if getattr(self, name) is not None
        ]
        if len(populated) > 1:
            raise ValueError(
                f"update {self.update_id} has more than one payload: "
                + ", ".join(populated)
            )

    @property
    def kind(self) -> UpdateKind | None:
        if self.message is not None:
            return "message"
        if self.edited_message is not None:
            return "edited_message"
        if self.callback_query is not None:
            return "callback_query"
        if self.inline_query is not None:
            return "inline_query"
        if self.chosen_inline_result is not None:
            return "chosen_inline_result"
        return None

    @property
    def chat(self) -> Chat | None:
        if self.message is not None:
            return self.message.chat
        if self.edited_message is not None:
            return self.edited_message.chat
        if self.callback_query is not None and self.callback_query.message is not None:
            return self.callback_query.message.chat
        return None

    @property
    def sender(self) -> User | None:
        msg = self.message or self.edited_message
        if msg is not None:
            return msg.from_
        if self.callback_query is not None:
            return self.callback_query.from_
        if self.inline_query is not None:
            return self.inline_query.from_
        if self.chosen_inline_result is not None:
            return self.chosen_inline_result.from_
        return None
