import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env locally; on Render, env vars are injected automatically.
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///moodtrends.db"
DEFAULT_OPENROUTER_MODEL = "meta-llama/llama-3.1-8b-instruct:free"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _valid_timezone_name(value: Optional[str], fallback: str = "UTC") -> str:
    candidate = (value or fallback).strip() or fallback
    try:
        ZoneInfo(candidate)
        return candidate
    except (KeyError, ValueError):
        logger.warning("Unknown TRENDS_TIMEZONE %r, falling back to %s", candidate, fallback)
        return fallback


@dataclass(frozen=True)
class Config:
    database_url: str = DEFAULT_DATABASE_URL
    frontend_origin: Optional[str] = None
    timezone: str = "UTC"
    allow_init_db: bool = False
    log_level: str = "INFO"
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = DEFAULT_OPENROUTER_MODEL
    public_app_url: str = ""
    port: int = 5000

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> Config:
    """Build a Config from the environment, then apply explicit overrides."""
    config = Config(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        frontend_origin=os.getenv("FRONTEND_ORIGIN") or None,
        timezone=_valid_timezone_name(os.getenv("TRENDS_TIMEZONE")),
        allow_init_db=_env_bool("ALLOW_INIT_DB"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        openrouter_model=os.getenv("OPENROUTER_MODEL", DEFAULT_OPENROUTER_MODEL),
        public_app_url=os.getenv("PUBLIC_APP_URL", ""),
        port=int(os.getenv("PORT", "5000")),
    )
    if overrides:
        config = replace(config, **dict(overrides))
        if "timezone" in overrides:
            config = replace(config, timezone=_valid_timezone_name(config.timezone))
    return config
