"""Token lifecycle for the Estoque API.

Handles login, token refresh, expiry tracking, and recovery after the
server rejects an access token.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx
from pydantic import ValidationError

from estoque_client.config import Config
from estoque_client.logout import LogoutGuard
from estoque_client.models.auth import (
    AuthEnvelope,
    AuthUser,
    Credential,
    Failed,
    RefreshOutcome,
    Renewed,
    TokenStatus,
)
from estoque_client.store import CredentialStore
from estoque_client.utils.errors import AuthenticationError, RenewalFailed

logger = logging.getLogger(__name__)


class AuthManager:
    """Keeps the access token usable for every caller sharing a CredentialStore."""

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        guard: LogoutGuard,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._guard = guard
        self._http = http or httpx.AsyncClient(timeout=config.settings.request_timeout)
        self.user: AuthUser | None = None

    @property
    def refresh_buffer_seconds(self) -> float:
        return self._config.tuning.refresh_buffer.total_seconds()

    async def login(self, identifier: str, secret: str) -> Credential:
        """Exchange e-mail and password for a fresh token pair.

        Raises:
            AuthenticationError: If the identity provider rejects the login.
        """
        if not identifier or not secret:
            raise AuthenticationError("E-mail and password are required")

        try:
            response = await self._http.post(
                self._config.url(self._config.settings.login_path),
                json={"email": identifier, "senha": secret},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Login failed: {e}") from e

        if not response.is_success:
            error_detail = response.text
            try:
                error_detail = response.json().get("message", response.text)
            except (ValueError, AttributeError):
                pass
            raise AuthenticationError(f"Login failed (HTTP {response.status_code}): {error_detail}")

        try:
            user = AuthEnvelope.model_validate(response.json()).data.user
        except (ValueError, ValidationError) as e:
            raise AuthenticationError(f"Login response was malformed: {e}") from e
        if not user.refreshtoken:
            raise AuthenticationError("Login response did not include a refresh token")

        credential = self._issue(user.accesstoken, user.refreshtoken)
        self.user = user
        self._store.replace(credential)
        self._guard.reset()
        logger.info(f"Logged in, token expires at {credential.access_expires_at}")
        return credential

    def logout(self) -> None:
        """Drop the stored session (user-initiated)."""
        self._store.clear()
        self.user = None

    async def get_credential(self) -> Credential | None:
        """Return a credential safe to use now, refreshing first if it is about to expire.

        Returns None when there is no session, or when the refresh failed (in
        which case the user has been signed out).
        """
        credential = self._store.read()
        if credential is None:
            return None

        remaining = credential.time_until_expiry()
        if remaining >= self.refresh_buffer_seconds:
            return credential

        logger.info(f"Token expires in {remaining:.1f}s, refreshing before use")
        outcome = await self.refresh()
        if isinstance(outcome, Failed):
            self._guard.trigger_logout_once()
            return None
        return outcome.credential

    async def recover(self, rejected: Credential) -> Credential | None:
        """Find a usable credential after the server rejected ``rejected``.

        Another request may already be refreshing, so peek at the store twice
        before refreshing ourselves. Returns None if nothing newer turns up.
        """
        tuning = self._config.tuning

        await asyncio.sleep(tuning.reactive_first_delay)
        current = self._store.read()
        if _same_token(current, rejected):
            logger.info("Token unchanged after first wait, checking again")
            await asyncio.sleep(tuning.reactive_second_delay)
            current = self._store.read()

        if current is None:
            return None
        if not _same_token(current, rejected):
            return current

        outcome = await self.refresh()
        if isinstance(outcome, Renewed):
            return outcome.credential
        return None

    async def refresh(self) -> RefreshOutcome:
        """Refresh the access token. Never raises."""
        try:
            credential = await self._refresh_token()
        except RenewalFailed as e:
            logger.error(f"Token refresh failed: {e}")
            return Failed(reason=str(e))
        return Renewed(credential=credential)

    def get_status(self) -> TokenStatus:
        """Get the current token status."""
        credential = self._store.read()
        if credential is None:
            return TokenStatus(has_token=False, is_expired=True)

        remaining = credential.time_until_expiry()
        is_expired = remaining <= 0
        return TokenStatus(
            has_token=True,
            is_expired=is_expired,
            expires_at=credential.access_expires_at,
            seconds_remaining=None if is_expired else int(remaining),
            refresh_due=remaining < self.refresh_buffer_seconds,
        )

    async def _refresh_token(self) -> Credential:
        """Refresh the access token using the refresh token flow."""
        current = self._store.read()
        if current is None:
            raise RenewalFailed("No session to refresh")

        try:
            response = await self._http.post(
                self._config.url(self._config.settings.refresh_path),
                headers={"Authorization": f"Bearer {current.refresh_token}"},
                json={"accesstoken": current.access_token},
            )
        except httpx.HTTPError as e:
            raise RenewalFailed(f"Token refresh request failed: {e}") from e

        if not response.is_success:
            raise RenewalFailed(f"Token refresh failed (HTTP {response.status_code})")

        try:
            user = AuthEnvelope.model_validate(response.json()).data.user
        except (ValueError, ValidationError) as e:
            raise RenewalFailed(f"Token refresh response was malformed: {e}") from e

        credential = self._issue(user.accesstoken, user.refreshtoken or current.refresh_token)
        self.user = user
        self._store.replace(credential)
        logger.info(f"Token refreshed, expires at {credential.access_expires_at}")
        return credential

    def _issue(self, access_token: str, refresh_token: str) -> Credential:
        return Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=datetime.now() + self._config.tuning.access_token_lifetime,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


def _same_token(a: Credential | None, b: Credential | None) -> bool:
    if a is None or b is None:
        return a is b
    return a.access_token == b.access_token
