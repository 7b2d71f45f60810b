from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import anyio
from anyio.abc import ObjectReceiveStream

from ..logging import get_logger, log_pipeline, update_context
from .api_models import CallbackQuery, ChosenInlineResult, InlineQuery, Message, Update
from .client_api import BotClient
from .errors import TelegramRetryAfter
from .requests import OutboundAction

logger = get_logger(__name__)

Actions = Sequence[OutboundAction]


@dataclass(frozen=True, slots=True)
class UpdateContext:
    update: Update
    bot: BotClient

    @property
    def chat_id(self) -> int | None:
        chat = self.update.chat
        return chat.id if chat is not None else None


MessageHandler = Callable[[UpdateContext, Message], Awaitable[Actions]]
CommandHandler = Callable[[UpdateContext, Message, str], Awaitable[Actions]]
CallbackHandler = Callable[[UpdateContext, CallbackQuery], Awaitable[Actions]]
InlineQueryHandler = Callable[[UpdateContext, InlineQuery], Awaitable[Actions]]
ChosenInlineResultHandler = Callable[
    [UpdateContext, ChosenInlineResult], Awaitable[Actions]
]


@dataclass(frozen=True, slots=True)
class Handlers:
    message: MessageHandler | None = None
    edited_message: MessageHandler | None = None
    callback_query: CallbackHandler | None = None
    inline_query: InlineQueryHandler | None = None
    chosen_inline_result: ChosenInlineResultHandler | None = None
    commands: Mapping[str, CommandHandler] = field(default_factory=dict)


@dataclass(slots=True)
class DispatchResult:
    update_id: int
    handler: str | None
    submitted: int = 0
    failed: int = 0


def parse_command(
    text: str | None, *, bot_username: str | None = None
) -> tuple[str | None, str]:
    """Split ``/command@bot args`` into ``(command, args)``.

    Returns ``(None, text)`` when the text is not a command or is addressed to
    a different bot.
    """
    if text is None:
        return None, ""
    stripped = text.lstrip()
    if not stripped.startswith("/"):
        return None, text
    first_line, _, rest_lines = stripped.partition("\n")
    token, _, rest = first_line.partition(" ")
    command = token[1:]
    if "@" in command:
        command, _, target = command.partition("@")
        if bot_username is not None and target.lower() != bot_username.lower():
            return None, text
    if not command:
        return None, text
    args_text = rest.strip()
    if rest_lines:
        args_text = f"{args_text}\n{rest_lines}" if args_text else rest_lines
    return command.lower(), args_text


def _checked_actions(returned: Any) -> list[OutboundAction]:
    if returned is None:
        raise TypeError("handler returned None instead of a list of requests")
    actions = list(returned)
    for action in actions:
        if not isinstance(action, OutboundAction):
            raise TypeError(
                f"handler returned {type(action).__name__}, not an outbound request"
            )
    return actions


class Dispatcher:
    def __init__(
        self,
        bot: BotClient,
        handlers: Handlers,
        *,
        bot_username: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._bot = bot
        self._handlers = handlers
        self._commands = {
            name.lower().lstrip("/"): handler
            for name, handler in handlers.commands.items()
        }
        self._bot_username = bot_username
        self._sleep = sleep

    async def route(self, update: Update) -> tuple[str | None, Actions]:
        """Run the one handler matching the populated variant."""
        ctx = UpdateContext(update=update, bot=self._bot)
        handlers = self._handlers
        match update.kind:
            case "message":
                assert update.message is not None
                command, args = parse_command(
                    update.message.text, bot_username=self._bot_username
                )
                command_handler = (
                    self._commands.get(command) if command is not None else None
                )
                if command_handler is not None:
                    return f"command:{command}", await command_handler(
                        ctx, update.message, args
                    )
                if handlers.message is not None:
                    return "message", await handlers.message(ctx, update.message)
            case "edited_message":
                assert update.edited_message is not None
                if handlers.edited_message is not None:
                    return "edited_message", await handlers.edited_message(
                        ctx, update.edited_message
                    )
            case "callback_query":
                assert update.callback_query is not None
                if handlers.callback_query is not None:
                    return "callback_query", await handlers.callback_query(
                        ctx, update.callback_query
                    )
            case "inline_query":
                assert update.inline_query is not None
                if handlers.inline_query is not None:
                    return "inline_query", await handlers.inline_query(
                        ctx, update.inline_query
                    )
            case "chosen_inline_result":
                assert update.chosen_inline_result is not None
                if handlers.chosen_inline_result is not None:
                    return "chosen_inline_result", await handlers.chosen_inline_result(
                        ctx, update.chosen_inline_result
                    )
        return None, ()

    async def submit(self, action: OutboundAction) -> Any:
        try:
            return await self._bot.call(action)
        except TelegramRetryAfter as exc:
            logger.warning(
                "dispatch.rate_limited",
                method=action.method,
                retry_after=exc.retry_after,
            )
            await self._sleep(exc.retry_after)
            return await self._bot.call(action)

    async def dispatch(self, update: Update) -> DispatchResult:
        with update_context(update_id=update.update_id):
            log_pipeline(logger, "dispatch.update", kind=update.kind)
            try:
                handler, returned = await self.route(update)
                actions = _checked_actions(returned)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "dispatch.handler_failed",
                    kind=update.kind,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )
                return DispatchResult(update_id=update.update_id, handler=None)
            result = DispatchResult(update_id=update.update_id, handler=handler)
            if handler is None:
                logger.debug("dispatch.skipped", kind=update.kind)
                return result
            for action in actions:
                try:
                    await self.submit(action)
                except Exception as exc:  # noqa: BLE001
                    result.failed += 1
                    logger.error(
                        "dispatch.action_failed",
                        method=action.method,
                        error=str(exc),
                        error_type=exc.__class__.__name__,
                    )
                    continue
                result.submitted += 1
            log_pipeline(
                logger,
                "dispatch.done",
                handler=handler,
                submitted=result.submitted,
                failed=result.failed,
            )
            return result

    async def consume(self, updates: ObjectReceiveStream[Update]) -> int:
        """Dispatch updates one at a time until the stream is closed."""
        handled = 0
        async with updates:
            async for update in updates:
                await self.dispatch(update)
                handled += 1
        return handled
