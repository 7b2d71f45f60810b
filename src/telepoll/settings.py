from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import TomlConfigSettingsSource

from .config import ConfigError, read_config, resolve_config_path
from .telegram.constants import API_BASE_URL, MAX_UPDATES_LIMIT

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

UpdateKindName = Literal[
    "message",
    "edited_message",
    "callback_query",
    "inline_query",
    "chosen_inline_result",
]


class PollingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_s: Annotated[int, Field(ge=0)] = 50
    limit: Annotated[int, Field(ge=1, le=MAX_UPDATES_LIMIT)] = MAX_UPDATES_LIMIT
    allowed_updates: list[UpdateKindName] | None = None
    retry_delay_s: Annotated[float, Field(ge=0)] = 2.0
    drop_pending_updates: bool = False
    buffer_size: Annotated[int, Field(ge=0)] = 100


class ApiSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    base_url: NonEmptyStr = API_BASE_URL
    request_timeout_s: Annotated[float, Field(gt=0)] = 120.0


class TelepollSettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        env_prefix="TELEPOLL__",
        env_nested_delimiter="__",
        str_strip_whitespace=True,
    )

    bot_token: NonEmptyStr
    bot: Literal["echo", "greeting", "callback"] = "echo"
    polling: PollingSettings = Field(default_factory=PollingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def _bound_settings(cfg_path: Path | None) -> type[TelepollSettings]:
    if cfg_path is None:
        return TelepollSettings
    cfg = dict(TelepollSettings.model_config)
    cfg["toml_file"] = cfg_path
    return type(
        "TelepollSettingsBound",
        (TelepollSettings,),
        {"model_config": SettingsConfigDict(**cfg)},
    )


def load_settings(
    path: str | Path | None = None, **overrides: Any
) -> tuple[TelepollSettings, Path | None]:
    """Layer overrides > environment > TOML file.

    An explicit ``path`` must exist. The default path is optional so the
    token can come from the environment or the command line alone.
    """
    cfg_path: Path | None = resolve_config_path(path)
    if cfg_path.exists() or path is not None:
        # surfaces missing/malformed files as ConfigError before pydantic sees them
        read_config(cfg_path)
    else:
        cfg_path = None
    init = {key: value for key, value in overrides.items() if value is not None}
    try:
        return _bound_settings(cfg_path)(**init), cfg_path
    except ValidationError as exc:
        where = f" in {cfg_path}" if cfg_path is not None else ""
        raise ConfigError(f"Invalid config{where}: {exc}") from exc


def validate_settings_data(
    data: dict[str, Any], *, config_path: Path | None = None
) -> TelepollSettings:
    try:
        return TelepollSettings.model_validate(data)
    except ValidationError as exc:
        where = f" in {config_path}" if config_path is not None else ""
        raise ConfigError(f"Invalid config{where}: {exc}") from exc
