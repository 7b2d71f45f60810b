from __future__ import annotations

from pathlib import Path

TELEGRAM_HARD_LIMIT = 4096
HOME_CONFIG_PATH = Path.home() / ".telepoll" / "telepoll.toml"
