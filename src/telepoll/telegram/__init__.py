"""Telegram Bot API client, update poller and dispatcher."""

from .api_models import Update
from .client_api import BotClient, HttpBotClient
from .dispatch import Dispatcher, Handlers, UpdateContext, parse_command
from .pipeline import run_pipeline
from .poller import UpdatePoller

__all__ = [
    "BotClient",
    "Dispatcher",
    "Handlers",
    "HttpBotClient",
    "Update",
    "UpdateContext",
    "UpdatePoller",
    "parse_command",
    "run_pipeline",
]
