"""Wiring for one user session: store, logout guard, auth, API client, stream."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import httpx

from estoque_client.auth import AuthManager
from estoque_client.client import ApiClient
from estoque_client.config import Config
from estoque_client.logout import LogoutGuard
from estoque_client.services.notifications import NotificationFeed
from estoque_client.store import CredentialStore, SessionFile
from estoque_client.stream import EventStreamClient


class Session:
    """Everything sharing one CredentialStore and one LogoutGuard."""

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        on_logout: Callable[[], None] | None = None,
        http: httpx.AsyncClient | None = None,
        stream_http: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.guard = LogoutGuard(store, self._signed_out)
        self._on_logout = on_logout
        self._stream_http = stream_http
        self._http = http or httpx.AsyncClient(timeout=config.settings.request_timeout)
        self.auth = AuthManager(config, store, self.guard, http=self._http)
        self.client = ApiClient(config, self.auth, self.guard, http=self._http)
        self._stream: EventStreamClient | None = None

    def stream(self) -> EventStreamClient:
        """The session's notification stream (created on first use)."""
        if self._stream is None:
            self._stream = EventStreamClient(self.config, self.store, http=self._stream_http)
        return self._stream

    def _signed_out(self) -> None:
        # The stream must not outlive the session it was opened for.
        if self._stream is not None:
            self._stream.abort()
        if self._on_logout is not None:
            self._on_logout()

    def notifications(self) -> NotificationFeed:
        return NotificationFeed(self.client, self.config)

    async def aclose(self) -> None:
        if self._stream is not None:
            await self._stream.close()
        await self._http.aclose()


@asynccontextmanager
async def open_session(
    config: Config,
    on_logout: Callable[[], None] | None = None,
    persist: bool = True,
) -> AsyncIterator[Session]:
    """Open a session backed by the session file (or in memory with ``persist=False``)."""
    if persist:
        store = CredentialStore.from_file(SessionFile(config.settings.session_file))
    else:
        store = CredentialStore()

    session = Session(config, store, on_logout)
    try:
        yield session
    finally:
        await session.aclose()
