from __future__ import annotations

from typing import Any


class TelegramError(Exception):
    pass


class TelegramNetworkError(TelegramError):
    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method} failed: {message}")
        self.method = method


class TelegramApiError(TelegramError):
    def __init__(
        self,
        method: str,
        *,
        error_code: int | None,
        description: str | None,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        desc = description or f"error {error_code}"
        super().__init__(f"{method} failed: {desc}")
        self.method = method
        self.error_code = error_code
        self.description = description
        self.parameters = parameters or {}


class TelegramRetryAfter(TelegramApiError):
    def __init__(
        self,
        method: str,
        retry_after: float,
        description: str | None = None,
    ) -> None:
        super().__init__(
            method,
            error_code=429,
            description=description or f"retry after {retry_after}",
            parameters={"retry_after": retry_after},
        )
        self.retry_after = float(retry_after)


class TelegramDecodeError(TelegramError):
    pass


class TelegramAuthError(TelegramError):
    pass


class RequestValidationError(TelegramError, ValueError):
    pass


def retry_after_from_payload(payload: dict[str, Any]) -> float | None:
    params = payload.get("parameters")
    if isinstance(params, dict):
        retry_after = params.get("retry_after")
        if isinstance(retry_after, (int, float)):
            return float(retry_after)
    return None
