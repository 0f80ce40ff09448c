"""Configuration loader that merges base + environment specific YAML files."""
from __future__ import annotations

import os
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, List, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from cronus.config.calendar_ids import resolve_calendar_ids
from cronus.util.date_utils import local_timezone
from cronus.util.locales import get_locale

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"

# environment variable -> dotted config path
_ENV_OVERRIDES: Dict[str, str] = {
    "CALENDAR_ID": "calendar.calendar_ids",
    "CALENDAR_IDS": "calendar.calendar_ids",
    "GOOGLE_SERVICE_ACCOUNT_FILE": "calendar.service_account_file",
    "LOOKAHEAD_DAYS": "calendar.lookahead_days",
    "TELEGRAM_BOT_TOKEN": "telegram.bot_token",
    "TELEGRAM_CHAT_ID": "telegram.chat_id",
    "ALERT_STATE_FILE": "alert.state_file",
    "TIMEZONE": "timezone",
}


class MissingCredentialsError(RuntimeError):
    """Raised at startup when the chat transport cannot be configured."""


class CalendarConfig(BaseModel):
    calendar_ids: List[str] = Field(default_factory=lambda: ["primary"])
    lookahead_days: int = Field(ge=0, default=5)
    service_account_file: str = "cronus.json"
    request_timeout_sec: float = Field(gt=0, default=20.0)
    max_results: int = Field(ge=1, le=2500, default=250)

    @field_validator("calendar_ids", mode="before")
    @classmethod
    def _normalise_ids(cls, value: Any) -> List[str]:
        return resolve_calendar_ids(value)


class TelegramConfig(BaseModel):
    bot_token: str | None = None
    chat_id: str | None = None
    api_base: str = "https://api.telegram.org"
    parse_mode: str | None = "Markdown"
    disable_web_page_preview: bool = True
    request_timeout_sec: float = Field(gt=0, default=10.0)

    @field_validator("chat_id", mode="before")
    @classmethod
    def _chat_id_as_text(cls, value: Any) -> str | None:
        return None if value in (None, "") else str(value)

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)


class DigestConfig(BaseModel):
    locale: str = "ru"
    flag_keywords: List[str] = Field(default_factory=lambda: ["кино", "театр", "дима с катей на"])
    flagged_followup_message: str = "🎭 *Напоминание:* в ближайшие дни запланирован выход в свет!"

    @field_validator("locale")
    @classmethod
    def _known_locale(cls, value: str) -> str:
        try:
            return get_locale(value).code
        except KeyError as exc:
            raise ValueError(str(exc)) from exc


class AlertConfig(BaseModel):
    keyword: str = "online"
    threshold_hours: float = Field(gt=0, default=5.0)
    state_file: str = "alert_state.json"


class ScheduleConfig(BaseModel):
    digest_hour: int = Field(ge=0, le=23, default=8)
    digest_minute: int = Field(ge=0, le=59, default=0)
    threshold_check_minute: int = Field(ge=0, le=59, default=0)
    flagged_followup_delay_sec: float = Field(ge=0, default=15.0)
    run_on_start: bool = True


class ReminderConfig(BaseModel):
    name: str
    message: str
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59, default=0)
    weekdays: List[int] | None = Field(default=None, description="0=Monday ... 6=Sunday")


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    alert: AlertConfig = Field(default_factory=AlertConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    reminders: List[ReminderConfig] = Field(default_factory=list)
    logging: LoggingConfig | None = None
    timezone: str | None = None
    mode: str = "dev"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str | None) -> str | None:
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown timezone '{value}'") from exc
        return value or None

    def zone(self) -> tzinfo:
        return ZoneInfo(self.timezone) if self.timezone else local_timezone()

    def resolve_path(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else PROJECT_ROOT / path


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, dotted in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        node = overrides
        *parents, leaf = dotted.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return _deep_merge(config, overrides)


def load_config(app_env: str | None = None, *, config_dir: Path | None = None) -> AppConfig:
    """Load configuration for the provided environment (defaults to APP_ENV)."""

    load_dotenv()
    config_path = config_dir or DEFAULT_CONFIG_DIR
    env_name = app_env or os.getenv("APP_ENV", "dev")

    base_config = _load_yaml(config_path / "base.yaml")
    env_file = config_path / f"{env_name}.yaml"
    env_config: Dict[str, Any] = {}
    if env_file.exists():
        env_config = _load_yaml(env_file)

    merged = _deep_merge(base_config, env_config)
    merged = _apply_env_overrides(merged, os.environ)
    merged.setdefault("mode", env_name)

    return AppConfig.model_validate(merged)


def require_transport_credentials(config: AppConfig) -> None:
    if not config.telegram.is_configured:
        raise MissingCredentialsError("Missing Telegram bot token or chat ID.")


__all__ = [
    "CalendarConfig",
    "TelegramConfig",
    "DigestConfig",
    "AlertConfig",
    "ScheduleConfig",
    "ReminderConfig",
    "LoggingConfig",
    "AppConfig",
    "MissingCredentialsError",
    "load_config",
    "require_transport_credentials",
]
