"""Shared fixtures for the estoque-client test suite."""
from __future__ import annotations

import json
from datetime import datetime, timedelta

import httpx
import pytest

from estoque_client.config import Config, SessionTuning, Settings
from estoque_client.logout import LogoutGuard
from estoque_client.models.auth import Credential
from estoque_client.store import CredentialStore

API_URL = "https://api.estoque.test"


@pytest.fixture
def fake_settings() -> Settings:
    return Settings(
        api_url=API_URL,
        session_file="./test-data/session.json",
        request_timeout=5.0,
        cache_ttl=300,
    )


@pytest.fixture
def fake_tuning() -> SessionTuning:
    """Production defaults, minus every real wait."""
    return SessionTuning(
        access_token_lifetime=timedelta(hours=1),
        reactive_first_delay=0.0,
        reactive_second_delay=0.0,
        reconnect_base_delay=0.0,
        reconnect_max_delay=0.0,
        max_reconnect_attempts=5,
        poll_interval=0.01,
    )


@pytest.fixture
def fake_config(fake_settings, fake_tuning) -> Config:
    return Config(settings=fake_settings, tuning=fake_tuning)


def make_credential(access="access-1", refresh="refresh-1", expires_in=3600.0) -> Credential:
    return Credential(
        access_token=access,
        refresh_token=refresh,
        access_expires_at=datetime.now() + timedelta(seconds=expires_in),
    )


@pytest.fixture
def credential() -> Credential:
    return make_credential()


@pytest.fixture
def store(credential) -> CredentialStore:
    return CredentialStore(credential)


@pytest.fixture
def logouts() -> list[int]:
    """Records every time the sign-out action actually runs."""
    return []


@pytest.fixture
def guard(store, logouts) -> LogoutGuard:
    return LogoutGuard(store, on_logout=lambda: logouts.append(1))


def auth_body(access="access-2", refresh="refresh-2", **user) -> dict:
    """Identity provider envelope for /login and /refresh."""
    payload = {"accesstoken": access, "_id": "u1", "nome": "Ana", "email": "ana@example.com", "ativo": True}
    if refresh is not None:
        payload["refreshtoken"] = refresh
    payload.update(user)
    return {"error": False, "code": 200, "message": "OK", "data": {"user": payload}}


def json_response(status_code: int, data) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode(), headers={"Content-Type": "application/json"})


def mock_http(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
