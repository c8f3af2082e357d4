# ABOUTME: Environment-driven settings for the weather logger.
# ABOUTME: Reads .env via python-dotenv, applies defaults, and fails fast on missing credentials.

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from src.errors import ConfigurationError

DEFAULT_POLL_MINUTES = 10
DEFAULT_OUTPUT_DIR = "./data"
DEFAULT_TARGET_ID = "51.50999832,-0.13"
DEFAULT_TIMEZONE = "Europe/London"
DEFAULT_FETCH_TIMEOUT_MS = 15000


class LoggerSettings(BaseModel):
    """Resolved process configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(repr=False)
    geocodes: str
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    target_id: str = DEFAULT_TARGET_ID
    timezone: str = DEFAULT_TIMEZONE
    poll_minutes: int = DEFAULT_POLL_MINUTES
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS

    @property
    def fetch_timeout_s(self) -> float:
        return self.fetch_timeout_ms / 1000


def get_env_var(name: str, fallback: str | None = None) -> str | None:
    """Return a trimmed environment variable, treating blank values as unset."""
    value = os.environ.get(name)
    if value and value.strip():
        return value.strip()
    return fallback


def _positive_int(name: str, default: int) -> int:
    raw = get_env_var(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_settings(dotenv: bool = True) -> LoggerSettings:
    """Build settings from the environment.

    Raises ConfigurationError when WU_API_KEY or WU_GEOCODES is unset, or when
    TIMEZONE is not a known IANA zone.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    api_key = get_env_var("WU_API_KEY")
    geocodes = get_env_var("WU_GEOCODES")
    if not api_key or not geocodes:
        raise ConfigurationError("WU_API_KEY and WU_GEOCODES must be set")

    timezone = get_env_var("TIMEZONE", DEFAULT_TIMEZONE)
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown TIMEZONE: {timezone!r}") from e

    return LoggerSettings(
        api_key=api_key,
        geocodes=geocodes,
        output_dir=Path(get_env_var("OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
        target_id=get_env_var("TARGET_LOCATION_ID", DEFAULT_TARGET_ID),
        timezone=timezone,
        poll_minutes=_positive_int("POLL_MINUTES", DEFAULT_POLL_MINUTES),
        fetch_timeout_ms=_positive_int("FETCH_TIMEOUT_MS", DEFAULT_FETCH_TIMEOUT_MS),
    )
