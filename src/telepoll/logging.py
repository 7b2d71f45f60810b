from __future__ import annotations

import io
import os
import re
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, TextIO, cast

import structlog
from structlog.types import Processor

TELEGRAM_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
TELEGRAM_BARE_TOKEN_RE = re.compile(r"\b\d+:[A-Za-z0-9_-]{10,}\b")

_LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
    "exception": 40,
    "critical": 50,
}


@dataclass(slots=True)
class _LogState:
    min_level: int = _LEVELS["info"]
    pipeline_level: str = "debug"
    file_handle: TextIO | None = None


_state = _LogState()
_json_line = structlog.processors.JSONRenderer(default=str)


def _truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _level_value(value: str | None, *, default: str = "info") -> int:
    if not value:
        return _LEVELS[default]
    return _LEVELS.get(value.strip().lower(), _LEVELS[default])


def log_pipeline(logger: Any, event: str, **fields: Any) -> None:
    """Per-update trace events; promoted to info by TELEPOLL_TRACE_PIPELINE."""
    getattr(logger, _state.pipeline_level)(event, **fields)


def redact_token(value: str) -> str:
    redacted = TELEGRAM_TOKEN_RE.sub("bot[REDACTED]", value)
    return TELEGRAM_BARE_TOKEN_RE.sub("[REDACTED_TOKEN]", redacted)


def _redact(value: Any) -> Any:
    # request payloads and envelopes are the only nested values we log
    if isinstance(value, str):
        return redact_token(value)
    if isinstance(value, dict):
        return {key: _redact(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def _drop_below_level(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    if _LEVELS.get(method_name, 0) < _state.min_level:
        raise structlog.DropEvent
    return event_dict


def _redact_event_dict(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    _ = logger, method_name
    return {key: _redact(value) for key, value in event_dict.items()}


def _file_sink(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    handle = _state.file_handle
    if handle is not None:
        try:
            handle.write(_json_line(logger, method_name, dict(event_dict)) + "\n")
            handle.flush()
        except OSError:
            # file logging stops; console output continues
            _state.file_handle = None
    return event_dict


def _add_logger_name(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    name = event_dict.pop("logger_name", None)
    if "logger" not in event_dict and isinstance(name, str) and name:
        event_dict["logger"] = name
    return event_dict


def get_logger(name: str | None = None) -> Any:
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


@contextmanager
def update_context(**fields: Any) -> Iterator[None]:
    with structlog.contextvars.bound_contextvars(**fields):
        yield


class SafeWriter(io.TextIOBase):
    """Console stream that stops writing once stdout is gone.

    ``telepoll | head`` closes the pipe early; the bot keeps polling and the
    log file, if any, keeps receiving events.
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self._gone = False

    def write(self, message: str) -> int:
        if self._gone:
            return 0
        try:
            return self._stream.write(message)
        except (BrokenPipeError, ValueError):
            self._gone = True
            return 0

    def flush(self) -> None:
        if self._gone:
            return
        try:
            self._stream.flush()
        except (BrokenPipeError, ValueError):
            self._gone = True

    def isatty(self) -> bool:
        return not self._gone and bool(getattr(self._stream, "isatty", bool)())


def _open_log_file(path: str | None) -> TextIO | None:
    if _state.file_handle is not None:
        try:
            _state.file_handle.close()
        except OSError:
            pass
        _state.file_handle = None
    if not path:
        return None
    try:
        return open(path, "a", encoding="utf-8")
    except OSError:
        return None


def setup_logging(
    *, debug: bool = False, cache_logger_on_first_use: bool = True
) -> None:
    level_name = "debug" if debug else os.environ.get("TELEPOLL_LOG_LEVEL")
    _state.min_level = _level_value(level_name, default="info")
    _state.pipeline_level = (
        "info" if _truthy(os.environ.get("TELEPOLL_TRACE_PIPELINE")) else "debug"
    )
    _state.file_handle = _open_log_file(os.environ.get("TELEPOLL_LOG_FILE"))

    format_value = os.environ.get("TELEPOLL_LOG_FORMAT", "console").strip().lower()
    color_override = os.environ.get("TELEPOLL_LOG_COLOR")
    colors = (
        sys.stdout.isatty() if color_override is None else _truthy(color_override)
    )
    if format_value == "json":
        renderer: Any = _json_line
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)

    processors = cast(
        list[Processor],
        [
            _drop_below_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            _add_logger_name,
        ],
    )
    if format_value == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.extend(
        cast(
            list[Processor],
            [_redact_event_dict, _file_sink, cast(Processor, renderer)],
        )
    )

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(
            file=cast(TextIO, SafeWriter(sys.stdout))
        ),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )
