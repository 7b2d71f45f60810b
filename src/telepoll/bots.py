"""The example bots: echo, greeting with a location keyboard, callback prompt."""

from __future__ import annotations

from collections.abc import Callable

from .telegram.api_models import CallbackQuery, InlineQuery, Message
from .telegram.dispatch import Actions, Handlers, UpdateContext
from .telegram.inline_results import new_inline_article
from .telegram.markup import KeyboardButton, new_reply_keyboard, new_v_inline_keyboard
from .telegram.requests import (
    EditMessageText,
    EditTarget,
    clone_message,
    new_answer_callback,
    new_answer_inline_query,
    new_message,
)

SEX_PREFIX = "sex:"
SEX_PROMPT = "Your sex:"


async def echo_message(ctx: UpdateContext, msg: Message) -> Actions:
    reply = clone_message(msg)
    return [reply] if reply is not None else []


async def start_command(ctx: UpdateContext, msg: Message, args: str) -> Actions:
    return [new_message(msg.chat.id, f"received start with arg {args}")]


async def echo_inline_query(ctx: UpdateContext, query: InlineQuery) -> Actions:
    text = query.query.strip()
    if not text:
        return []
    article = new_inline_article(query.id, f"Echo: {text[:40]}", text)
    return [new_answer_inline_query(query.id, [article])]


async def greet_with_location_keyboard(ctx: UpdateContext, msg: Message) -> Actions:
    if msg.location is not None:
        return [
            new_message(
                msg.chat.id,
                f"Got you at {msg.location.latitude:.5f}, "
                f"{msg.location.longitude:.5f}",
                reply_to_message_id=msg.message_id,
            )
        ]
    button = KeyboardButton(text="Gimme where u live!!", request_location=True)
    return [new_message(msg.chat.id, "Hi", reply_markup=new_reply_keyboard([button]))]


def _sex_prompt(chat_id: int) -> Actions:
    keyboard = new_v_inline_keyboard(
        SEX_PREFIX,
        ["Female", "Male"],
        ["female", "male"],
    )
    return [new_message(chat_id, SEX_PROMPT, reply_markup=keyboard)]


async def prompt_sex(ctx: UpdateContext, msg: Message) -> Actions:
    return _sex_prompt(msg.chat.id)


async def answer_sex(ctx: UpdateContext, query: CallbackQuery) -> Actions:
    data = query.data or ""
    if data.startswith(SEX_PREFIX):
        value = data[len(SEX_PREFIX) :]
        if query.message is not None:
            ref = EditTarget(
                chat_id=query.message.chat.id, message_id=query.message.message_id
            )
        else:
            ref = EditTarget(inline_message_id=query.inline_message_id)
        return [
            new_answer_callback(query.id, "Your configs changed"),
            EditMessageText(ref=ref, text=f"You sex: {value}"),
        ]
    # unknown callback data falls back to a fresh prompt
    chat_id = ctx.chat_id
    if chat_id is None:
        return []
    return _sex_prompt(chat_id)


def echo_handlers() -> Handlers:
    return Handlers(
        message=echo_message,
        inline_query=echo_inline_query,
        commands={"start": start_command},
    )


def greeting_handlers() -> Handlers:
    return Handlers(message=greet_with_location_keyboard)


def callback_handlers() -> Handlers:
    return Handlers(message=prompt_sex, callback_query=answer_sex)


BOTS: dict[str, Callable[[], Handlers]] = {
    "echo": echo_handlers,
    "greeting": greeting_handlers,
    "callback": callback_handlers,
}


def get_handlers(name: str) -> Handlers:
    try:
        factory = BOTS[name]
    except KeyError:
        available = ", ".join(sorted(BOTS))
        raise ValueError(f"Unknown bot {name!r}. Available: {available}.") from None
    return factory()
