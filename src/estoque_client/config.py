"""Configuration management for the Estoque client.

Loads the API location from .env and session tuning from config/session.yaml,
with environment variables taking precedence over the YAML file.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from estoque_client.utils.errors import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)

_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}
_DURATION_RE = re.compile(r"^(\d+)([smhd])$")


def parse_duration(value: str) -> timedelta:
    """Parse a lifetime string such as ``15m`` or ``1h``.

    Unparseable values fall back to one hour, matching what the identity
    provider issues by default.
    """
    match = _DURATION_RE.match(value.strip())
    if not match:
        logger.warning(f"Invalid duration '{value}', using default of 1 hour")
        return DEFAULT_TOKEN_LIFETIME
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


class Settings(BaseModel):
    """Application settings loaded from environment variables."""
    api_url: str = Field(description="Base URL of the Estoque API")
    session_file: str = Field(default="./data/session.json", description="Where the CLI keeps its session")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    cache_ttl: int = Field(default=300, ge=0, description="Query cache TTL in seconds")
    login_path: str = "/login"
    refresh_path: str = "/refresh"
    notifications_path: str = "/notificacoes"
    stream_path: str = "/notificacoes/stream"


class SessionTuning(BaseModel):
    """Timing knobs for token renewal and the notification stream."""
    access_token_lifetime: timedelta = DEFAULT_TOKEN_LIFETIME
    reactive_first_delay: float = Field(default=1.0, ge=0)
    reactive_second_delay: float = Field(default=0.5, ge=0)
    reconnect_base_delay: float = Field(default=3.0, ge=0)
    reconnect_max_delay: float = Field(default=30.0, ge=0)
    max_reconnect_attempts: int = Field(default=5, ge=0)
    poll_interval: float = Field(default=15.0, gt=0)
    notification_page_size: int = Field(default=5, gt=0)
    notification_event: str = "notificacao"

    @property
    def refresh_buffer(self) -> timedelta:
        """Safety margin before expiry: 2s floor or 10% of the lifetime."""
        return max(timedelta(seconds=2), self.access_token_lifetime * 0.1)


class Config(BaseModel):
    """Full application configuration."""
    settings: Settings
    tuning: SessionTuning = Field(default_factory=SessionTuning)

    def url(self, path: str) -> str:
        """Join a request path onto the API base URL."""
        return self.settings.api_url.rstrip("/") + path


def _find_project_root() -> Path:
    """Walk up from the working directory to find the project root (where config/ lives)."""
    current = Path.cwd().resolve()
    for parent in [current, *current.parents]:
        if (parent / "config" / "session.yaml").exists():
            return parent
    return current


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


def _load_tuning_file(project_root: Path) -> dict[str, Any]:
    """Load tuning overrides from config/session.yaml, if present."""
    path = project_root / "config" / "session.yaml"
    if not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return dict(data.get("session", {}))


# env var name -> SessionTuning field
_TUNING_ENV = {
    "ESTOQUE_REACTIVE_FIRST_DELAY": "reactive_first_delay",
    "ESTOQUE_REACTIVE_SECOND_DELAY": "reactive_second_delay",
    "ESTOQUE_RECONNECT_BASE_DELAY": "reconnect_base_delay",
    "ESTOQUE_RECONNECT_MAX_DELAY": "reconnect_max_delay",
    "ESTOQUE_MAX_RECONNECT_ATTEMPTS": "max_reconnect_attempts",
    "ESTOQUE_POLL_INTERVAL": "poll_interval",
    "ESTOQUE_NOTIFICATION_PAGE_SIZE": "notification_page_size",
    "ESTOQUE_NOTIFICATION_EVENT": "notification_event",
}


def _load_tuning(file_values: dict[str, Any]) -> SessionTuning:
    """Merge YAML values with environment overrides.

    Supports ESTOQUE_* names and the legacy JWT_ACCESS_TOKEN_EXPIRATION.
    """
    values = dict(file_values)
    for key, field in _TUNING_ENV.items():
        val = _env(key)
        if val:
            values[field] = val

    lifetime = _env("ESTOQUE_ACCESS_TOKEN_LIFETIME", "JWT_ACCESS_TOKEN_EXPIRATION")
    if lifetime:
        values["access_token_lifetime"] = lifetime
    if isinstance(values.get("access_token_lifetime"), str):
        values["access_token_lifetime"] = parse_duration(values["access_token_lifetime"])

    return SessionTuning(**values)


def _load_settings() -> Settings:
    """Load settings from environment variables.

    Supports ESTOQUE_* and the legacy API_URL / NEXT_PUBLIC_API_URL names.
    """
    api_url = _env("ESTOQUE_API_URL", "API_URL", "NEXT_PUBLIC_API_URL")
    if not api_url:
        raise ConfigError("ESTOQUE_API_URL is not set. Check your .env file.")

    return Settings(
        api_url=api_url,
        session_file=_env("ESTOQUE_SESSION_FILE", default="./data/session.json"),
        request_timeout=float(_env("ESTOQUE_REQUEST_TIMEOUT", default="30")),
        cache_ttl=int(_env("ESTOQUE_CACHE_TTL", default="300")),
    )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load and cache the full application configuration."""
    project_root = _find_project_root()

    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    settings = _load_settings()
    tuning = _load_tuning(_load_tuning_file(project_root))

    logger.info(
        f"Access token lifetime {tuning.access_token_lifetime}, "
        f"refresh buffer {tuning.refresh_buffer.total_seconds():.1f}s"
    )
    return Config(settings=settings, tuning=tuning)
