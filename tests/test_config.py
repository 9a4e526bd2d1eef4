"""Tests for config.py — duration parsing, env helpers, tuning file, validation."""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from estoque_client.config import (
    Config,
    SessionTuning,
    Settings,
    _env,
    _load_settings,
    _load_tuning,
    _load_tuning_file,
    parse_duration,
)
from estoque_client.utils.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "ESTOQUE_API_URL", "API_URL", "NEXT_PUBLIC_API_URL",
        "ESTOQUE_ACCESS_TOKEN_LIFETIME", "JWT_ACCESS_TOKEN_EXPIRATION",
        "ESTOQUE_MAX_RECONNECT_ATTEMPTS", "ESTOQUE_POLL_INTERVAL",
        "ESTOQUE_SESSION_FILE", "ESTOQUE_REQUEST_TIMEOUT", "ESTOQUE_CACHE_TTL",
    ):
        monkeypatch.delenv(key, raising=False)


# ── parse_duration ───────────────────────────────────────────────────

@pytest.mark.parametrize("value,expected", [
    ("30s", timedelta(seconds=30)),
    ("15m", timedelta(minutes=15)),
    ("1h", timedelta(hours=1)),
    ("7d", timedelta(days=7)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "1 hour", "10", "h1", "1.5h"])
def test_parse_duration_invalid_defaults_to_one_hour(value):
    assert parse_duration(value) == timedelta(hours=1)


# ── refresh_buffer ───────────────────────────────────────────────────

def test_refresh_buffer_ten_percent():
    assert SessionTuning(access_token_lifetime=timedelta(minutes=15)).refresh_buffer == timedelta(seconds=90)


def test_refresh_buffer_two_second_floor():
    assert SessionTuning(access_token_lifetime=timedelta(seconds=5)).refresh_buffer == timedelta(seconds=2)


# ── validation ───────────────────────────────────────────────────────

def test_negative_delay_rejected():
    with pytest.raises(ValidationError):
        SessionTuning(reactive_first_delay=-1)


def test_zero_poll_interval_rejected():
    with pytest.raises(ValidationError):
        SessionTuning(poll_interval=0)


def test_defaults():
    tuning = SessionTuning()
    assert tuning.reconnect_base_delay == 3.0
    assert tuning.reconnect_max_delay == 30.0
    assert tuning.max_reconnect_attempts == 5
    assert tuning.reactive_first_delay == 1.0
    assert tuning.reactive_second_delay == 0.5


def test_url_joins_without_double_slash():
    config = Config(settings=Settings(api_url="https://api.test/"))
    assert config.url("/refresh") == "https://api.test/refresh"


# ── _env helper ──────────────────────────────────────────────────────

def test_env_fallback_key(monkeypatch):
    monkeypatch.delenv("FOO", raising=False)
    monkeypatch.setenv("BAZ", "qux")
    assert _env("FOO", "BAZ") == "qux"


def test_env_strips_quotes(monkeypatch):
    monkeypatch.setenv("FOO", '"hello"')
    assert _env("FOO") == "hello"


def test_env_default(monkeypatch):
    monkeypatch.delenv("FOO", raising=False)
    assert _env("FOO", default="fallback") == "fallback"


# ── _load_settings ───────────────────────────────────────────────────

def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("ESTOQUE_API_URL", "https://api.test")
    monkeypatch.setenv("ESTOQUE_SESSION_FILE", "/tmp/s.json")
    monkeypatch.setenv("ESTOQUE_CACHE_TTL", "10")
    settings = _load_settings()
    assert settings.api_url == "https://api.test"
    assert settings.session_file == "/tmp/s.json"
    assert settings.cache_ttl == 10


def test_load_settings_legacy_names(monkeypatch):
    monkeypatch.setenv("NEXT_PUBLIC_API_URL", "https://legacy.test")
    assert _load_settings().api_url == "https://legacy.test"


def test_server_side_url_preferred_over_public(monkeypatch):
    monkeypatch.setenv("API_URL", "http://internal:5011")
    monkeypatch.setenv("NEXT_PUBLIC_API_URL", "https://public.test")
    assert _load_settings().api_url == "http://internal:5011"


def test_missing_api_url_raises():
    with pytest.raises(ConfigError, match="ESTOQUE_API_URL"):
        _load_settings()


# ── tuning ───────────────────────────────────────────────────────────

def test_tuning_file_missing(tmp_path):
    assert _load_tuning_file(tmp_path) == {}


def test_tuning_file_values(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "session.yaml").write_text(
        "session:\n  access_token_lifetime: 15m\n  max_reconnect_attempts: 8\n"
    )
    tuning = _load_tuning(_load_tuning_file(tmp_path))
    assert tuning.access_token_lifetime == timedelta(minutes=15)
    assert tuning.max_reconnect_attempts == 8


def test_env_overrides_tuning_file(monkeypatch):
    monkeypatch.setenv("ESTOQUE_MAX_RECONNECT_ATTEMPTS", "2")
    tuning = _load_tuning({"max_reconnect_attempts": 8, "poll_interval": 5})
    assert tuning.max_reconnect_attempts == 2
    assert tuning.poll_interval == 5


def test_legacy_lifetime_env(monkeypatch):
    monkeypatch.setenv("JWT_ACCESS_TOKEN_EXPIRATION", "30s")
    tuning = _load_tuning({"access_token_lifetime": "1h"})
    assert tuning.access_token_lifetime == timedelta(seconds=30)
    assert tuning.refresh_buffer == timedelta(seconds=3)
