"""Authenticated API client for the Estoque API.

Attaches the bearer token to every call and turns a rejected token into
either one transparent retry or a single sign-out.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from estoque_client.auth import AuthManager
from estoque_client.config import Config
from estoque_client.logout import LogoutGuard
from estoque_client.models.requests import PendingRequest
from estoque_client.utils.errors import AuthExpired, AuthRejected, ServerError, TransportError

logger = logging.getLogger(__name__)


# 498 is the API's "token expired"; treated the same as 401.
AUTH_REJECTED_STATUSES = frozenset({401, 498})


class ApiClient:
    """HTTP client for the Estoque API with token renewal."""

    def __init__(
        self,
        config: Config,
        auth: AuthManager,
        guard: LogoutGuard,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._auth = auth
        self._guard = guard
        self._http = http or httpx.AsyncClient(timeout=config.settings.request_timeout)

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated API request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            path: API path (e.g. "/notificacoes"). Appended to the base URL.
            body: JSON request body.
            params: Query parameters.
            extra_headers: Additional headers to include.

        Returns:
            The httpx.Response object (always 2xx/3xx).

        Raises:
            AuthExpired: No session, or the session could not be renewed.
            ServerError: Any other non-2xx response.
            TransportError: The request never got a response.
        """
        pending = PendingRequest(method=method.upper(), path=path, body=body, params=params)

        while True:
            credential = await self._auth.get_credential()
            if credential is None:
                raise AuthExpired("Session expired. Please log in again.")
            pending = pending.model_copy(update={"credential": credential})

            try:
                return await self._send(pending, extra_headers)
            except AuthRejected as e:
                if pending.retried:
                    logger.warning(f"{pending.method} {pending.path} rejected again after renewal")
                    break

                logger.info(f"Got {e.status_code}, trying to renew the session...")
                renewed = await self._auth.recover(credential)
                if renewed is None or renewed.access_token == credential.access_token:
                    break

                logger.info("Session renewed, retrying request")
                pending = pending.model_copy(update={"retried": True})

        self._guard.trigger_logout_once()
        raise AuthExpired("Session expired. Please log in again.")

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Convenience method for GET requests."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Convenience method for POST requests."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        """Convenience method for PUT requests."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        """Convenience method for PATCH requests."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        """Convenience method for DELETE requests."""
        return await self.request("DELETE", path, **kwargs)

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like request(), but returns the decoded JSON body (None when empty)."""
        response = await self.request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(response.status_code, "API response is not valid JSON") from e

    async def _send(
        self,
        pending: PendingRequest,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute one attempt of ``pending``."""
        url = self._config.url(pending.path)
        headers = self._build_headers(pending, extra_headers)

        logger.info(f"[{'retry' if pending.retried else 'attempt'}] {pending.method} {url}")
        try:
            response = await self._http.request(
                method=pending.method,
                url=url,
                headers=headers,
                json=pending.body,
                params=pending.params,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Connection to the API failed: {e}") from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthRejected(response.status_code)

        if response.status_code >= 400:
            payload: Any = None
            message = response.text or "Request failed"
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    message = payload.get("message") or message
            except ValueError:
                pass
            raise ServerError(response.status_code, message, payload)

        return response

    def _build_headers(
        self,
        pending: PendingRequest,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Build request headers with the bearer token."""
        if pending.credential is None:
            raise AuthExpired("Session expired. Please log in again.")
        headers = {"Authorization": f"Bearer {pending.credential.access_token}"}

        if pending.body is not None:
            headers["Content-Type"] = "application/json"

        if extra_headers:
            headers.update(extra_headers)

        return headers

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
        await self._auth.close()
