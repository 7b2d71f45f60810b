"""Long-polling Telegram bot runtime."""

__version__ = "0.1.0"
