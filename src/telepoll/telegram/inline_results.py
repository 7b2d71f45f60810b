"""Inline query results, tagged on the wire ``type`` field."""

from __future__ import annotations

from typing import TypeAlias

import msgspec

from .errors import RequestValidationError
from .markup import InlineKeyboardMarkup, encode_reply_markup


class InputTextMessageContent(msgspec.Struct, omit_defaults=True):
    message_text: str
    parse_mode: str | None = None
    disable_web_page_preview: bool | None = None


class _InlineQueryResult(
    msgspec.Struct, tag_field="type", omit_defaults=True, kw_only=True
):
    id: str
    reply_markup: InlineKeyboardMarkup | None = None


class InlineQueryResultArticle(_InlineQueryResult, tag="article", kw_only=True):
    title: str
    input_message_content: InputTextMessageContent
    url: str | None = None
    description: str | None = None
    thumb_url: str | None = None


class InlineQueryResultPhoto(_InlineQueryResult, tag="photo", kw_only=True):
    photo_url: str
    thumb_url: str
    title: str | None = None
    description: str | None = None
    caption: str | None = None
    input_message_content: InputTextMessageContent | None = None


InlineQueryResult: TypeAlias = InlineQueryResultArticle | InlineQueryResultPhoto


def validate_inline_result(result: InlineQueryResult) -> None:
    if not result.id or len(result.id.encode("utf-8")) > 64:
        raise RequestValidationError("inline result id must be 1-64 bytes")
    match result:
        case InlineQueryResultArticle(title=title, input_message_content=content):
            if not title:
                raise RequestValidationError(f"article {result.id!r} needs a title")
            if not content.message_text:
                raise RequestValidationError(
                    f"article {result.id!r} needs message text"
                )
        case InlineQueryResultPhoto(photo_url=photo_url, thumb_url=thumb_url):
            if not photo_url or not thumb_url:
                raise RequestValidationError(
                    f"photo {result.id!r} needs photo_url and thumb_url"
                )
        case _:
            raise RequestValidationError(
                f"unsupported inline result {type(result).__name__}"
            )
    if result.reply_markup is not None:
        encode_reply_markup(result.reply_markup)


def new_inline_article(
    result_id: str, title: str, message_text: str
) -> InlineQueryResultArticle:
    return InlineQueryResultArticle(
        id=result_id,
        title=title,
        input_message_content=InputTextMessageContent(message_text=message_text),
    )
