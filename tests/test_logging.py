import errno
import io
import json

import pytest

from telepoll import logging as tp_logging
from telepoll.logging import (
    SafeWriter,
    get_logger,
    log_pipeline,
    redact_token,
    setup_logging,
)


def test_redact_token_in_urls_and_bare() -> None:
    url = "https://api.telegram.org/bot123456:ABCdef_ghi-JKL/getUpdates"
    assert redact_token(url) == "https://api.telegram.org/bot[REDACTED]/getUpdates"
    assert redact_token("token 123456:ABCdefghijklmnop") == "token [REDACTED_TOKEN]"
    assert redact_token("update 42 handled") == "update 42 handled"


def test_event_dict_redaction_walks_containers() -> None:
    event = {
        "event": "telegram.network_error",
        "url": "https://x/bot1:abc/getMe",
        "payload": {"nested": ["bot1:abc", {"token": "bot2:def"}]},
        "count": 3,
    }

    redacted = tp_logging._redact_event_dict(None, "info", event)

    assert redacted["url"] == "https://x/bot[REDACTED]/getMe"
    assert redacted["payload"] == {
        "nested": ["bot[REDACTED]", {"token": "bot[REDACTED]"}]
    }
    assert redacted["count"] == 3


def test_log_pipeline_uses_configured_level(monkeypatch) -> None:
    calls: list[tuple[str, str]] = []

    class _Logger:
        def debug(self, event: str, **fields) -> None:
            calls.append(("debug", event))

        def info(self, event: str, **fields) -> None:
            calls.append(("info", event))

    monkeypatch.setattr(tp_logging._state, "pipeline_level", "debug")
    log_pipeline(_Logger(), "dispatch.update")
    monkeypatch.setattr(tp_logging._state, "pipeline_level", "info")
    log_pipeline(_Logger(), "dispatch.update")

    assert calls == [("debug", "dispatch.update"), ("info", "dispatch.update")]


def test_trace_pipeline_env_promotes_to_info(monkeypatch) -> None:
    monkeypatch.setenv("TELEPOLL_TRACE_PIPELINE", "1")
    monkeypatch.delenv("TELEPOLL_LOG_FILE", raising=False)

    setup_logging(cache_logger_on_first_use=False)

    assert tp_logging._state.pipeline_level == "info"
    monkeypatch.delenv("TELEPOLL_TRACE_PIPELINE")
    setup_logging(cache_logger_on_first_use=False)
    assert tp_logging._state.pipeline_level == "debug"


def test_log_file_gets_redacted_json_lines(monkeypatch, tmp_path, capsys) -> None:
    log_path = tmp_path / "telepoll.log"
    monkeypatch.setenv("TELEPOLL_LOG_FILE", str(log_path))
    monkeypatch.setenv("TELEPOLL_LOG_COLOR", "0")
    monkeypatch.delenv("TELEPOLL_LOG_LEVEL", raising=False)

    setup_logging(cache_logger_on_first_use=False)
    logger = get_logger("tests.logging")
    logger.debug("hidden.event")
    logger.info("visible.event", url="https://x/bot9:secret/sendMessage")

    monkeypatch.delenv("TELEPOLL_LOG_FILE")
    setup_logging(cache_logger_on_first_use=False)

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "visible.event"
    assert record["level"] == "info"
    assert record["logger"] == "tests.logging"
    assert record["url"] == "https://x/bot[REDACTED]/sendMessage"
    assert "secret" not in capsys.readouterr().out


def test_debug_flag_lowers_the_threshold(monkeypatch) -> None:
    monkeypatch.setenv("TELEPOLL_LOG_LEVEL", "error")
    monkeypatch.delenv("TELEPOLL_LOG_FILE", raising=False)

    setup_logging(cache_logger_on_first_use=False)
    assert tp_logging._state.min_level == 40

    setup_logging(debug=True, cache_logger_on_first_use=False)
    assert tp_logging._state.min_level == 10


class _ClosedPipe(io.StringIO):
    def write(self, message: str) -> int:
        raise BrokenPipeError(errno.EPIPE, "Broken pipe")


def test_safe_writer_goes_quiet_after_broken_pipe() -> None:
    writer = SafeWriter(_ClosedPipe())

    assert writer.write("one") == 0
    assert writer.write("two") == 0
    writer.flush()


def test_safe_writer_reraises_other_os_errors() -> None:
    class _Full(io.StringIO):
        def write(self, message: str) -> int:
            raise OSError(errno.ENOSPC, "No space left on device")

    with pytest.raises(OSError):
        SafeWriter(_Full()).write("x")


def test_failing_log_file_is_dropped(monkeypatch) -> None:
    class _FullDisk(io.StringIO):
        def write(self, message: str) -> int:
            raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(tp_logging._state, "file_handle", _FullDisk())

    event = {"event": "dispatch.update", "update_id": 1}
    assert tp_logging._file_sink(None, "info", event) == event
    assert tp_logging._state.file_handle is None
