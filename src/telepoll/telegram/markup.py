from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeAlias

import msgspec

from .errors import RequestValidationError


class KeyboardButton(msgspec.Struct, omit_defaults=True):
    text: str
    request_contact: bool = False
    request_location: bool = False


class ReplyKeyboardMarkup(msgspec.Struct, omit_defaults=True):
    keyboard: list[list[KeyboardButton]]
    resize_keyboard: bool = False
    one_time_keyboard: bool = False
    selective: bool = False


class ReplyKeyboardRemove(msgspec.Struct):
    remove_keyboard: bool = True
    selective: bool = False


class ForceReply(msgspec.Struct):
    force_reply: bool = True
    selective: bool = False


class InlineKeyboardButton(msgspec.Struct, omit_defaults=True):
    text: str
    url: str | None = None
    callback_data: str | None = None
    switch_inline_query: str | None = None


class InlineKeyboardMarkup(msgspec.Struct, omit_defaults=True):
    inline_keyboard: list[list[InlineKeyboardButton]]


ReplyMarkup: TypeAlias = (
    ReplyKeyboardMarkup | ReplyKeyboardRemove | ForceReply | InlineKeyboardMarkup
)


def _validate_inline_button(button: InlineKeyboardButton) -> None:
    if not button.text:
        raise RequestValidationError("inline keyboard button requires text")
    actions = [
        value
        for value in (button.url, button.callback_data, button.switch_inline_query)
        if value is not None
    ]
    if len(actions) != 1:
        raise RequestValidationError(
            f"inline keyboard button {button.text!r} needs exactly one of "
            "url, callback_data, switch_inline_query"
        )
    if button.callback_data is not None and not (
        1 <= len(button.callback_data.encode("utf-8")) <= 64
    ):
        raise RequestValidationError(
            f"callback_data of {button.text!r} must be 1-64 bytes"
        )


def _validate_rows(rows: Sequence[Sequence[Any]], *, label: str) -> None:
    if not rows or not any(rows):
        raise RequestValidationError(f"{label} must have at least one button")


def encode_reply_markup(markup: ReplyMarkup) -> dict[str, Any]:
    match markup:
        case InlineKeyboardMarkup(inline_keyboard=rows):
            _validate_rows(rows, label="inline keyboard")
            for row in rows:
                for button in row:
                    _validate_inline_button(button)
        case ReplyKeyboardMarkup(keyboard=rows):
            _validate_rows(rows, label="reply keyboard")
            for row in rows:
                for button in row:
                    if not button.text:
                        raise RequestValidationError(
                            "reply keyboard button requires text"
                        )
        case ReplyKeyboardRemove() | ForceReply():
            pass
        case _:
            raise RequestValidationError(
                f"unsupported reply markup {type(markup).__name__}"
            )
    return msgspec.to_builtins(markup)


def new_keyboard_button_row(*labels: str) -> list[KeyboardButton]:
    return [KeyboardButton(text=label) for label in labels]


def new_reply_keyboard(
    *rows: Sequence[KeyboardButton],
    resize: bool = False,
    one_time: bool = False,
) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[list(row) for row in rows],
        resize_keyboard=resize,
        one_time_keyboard=one_time,
    )


def new_inline_keyboard(
    *rows: Sequence[InlineKeyboardButton],
) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[list(row) for row in rows])


def _callback_buttons(
    prefix: str, labels: Sequence[str], values: Sequence[str]
) -> list[InlineKeyboardButton]:
    if len(labels) != len(values):
        raise RequestValidationError(
            f"got {len(labels)} labels for {len(values)} values"
        )
    return [
        InlineKeyboardButton(text=label, callback_data=f"{prefix}{value}")
        for label, value in zip(labels, values)
    ]


def new_v_inline_keyboard(
    prefix: str, labels: Sequence[str], values: Sequence[str]
) -> InlineKeyboardMarkup:
    """One button per row, each carrying ``prefix + value`` as callback data."""
    buttons = _callback_buttons(prefix, labels, values)
    return new_inline_keyboard(*([button] for button in buttons))


def new_h_inline_keyboard(
    prefix: str, labels: Sequence[str], values: Sequence[str]
) -> InlineKeyboardMarkup:
    """All buttons on a single row."""
    return new_inline_keyboard(_callback_buttons(prefix, labels, values))
