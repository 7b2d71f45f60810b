from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any

import anyio
import typer

from . import __version__
from .bots import BOTS
from .config import ConfigError
from .logging import setup_logging
from .runtime import build_config, run_main_loop
from .settings import TelepollSettings, load_settings
from .telegram.errors import TelegramAuthError, TelegramError


def _print_version_and_exit() -> None:
    typer.echo(__version__)
    raise typer.Exit()


def _version_callback(value: bool) -> None:
    if value:
        _print_version_and_exit()


def _collect_overrides(
    *,
    token: str | None,
    bot: str | None,
    drop_pending: bool,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {"bot_token": token, "bot": bot}
    if drop_pending:
        overrides["polling"] = {"drop_pending_updates": True}
    return overrides


def _load(
    config: Path | None,
    *,
    token: str | None,
    bot: str | None,
    drop_pending: bool,
) -> TelepollSettings:
    settings, _ = load_settings(
        config,
        **_collect_overrides(token=token, bot=bot, drop_pending=drop_pending),
    )
    return settings


def run(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to telepoll.toml (default: ~/.telepoll/telepoll.toml).",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        help="Bot token; overrides the config file and TELEPOLL__BOT_TOKEN.",
    ),
    bot: str | None = typer.Option(
        None,
        "--bot",
        help=f"Example bot to run ({', '.join(sorted(BOTS))}).",
    ),
    drop_pending: bool = typer.Option(
        False,
        "--drop-pending",
        help="Skip updates that arrived while the bot was offline.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log every Telegram request and response.",
    ),
) -> None:
    setup_logging(debug=debug)
    try:
        settings = _load(config, token=token, bot=bot, drop_pending=drop_pending)
        cfg = build_config(settings)
    except (ConfigError, TelegramAuthError) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    try:
        anyio.run(partial(run_main_loop, cfg, handle_signals=True))
    except TelegramError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


def create_app() -> typer.Typer:
    app = typer.Typer(add_completion=False)
    app.command()(run)
    return app


def main() -> None:
    create_app()()


if __name__ == "__main__":
    main()
