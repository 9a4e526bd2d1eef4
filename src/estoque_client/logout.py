"""Single sign-out latch shared by everything using one session."""

from __future__ import annotations

import logging
from typing import Callable

from estoque_client.store import CredentialStore

logger = logging.getLogger(__name__)


class LogoutGuard:
    """Makes sure a failed session produces exactly one sign-out.

    Any number of concurrent callers may discover that the credential can no
    longer be renewed; only the first one clears the store and runs
    ``on_logout``. The latch is reopened by ``reset()`` after a new login.
    """

    def __init__(
        self,
        store: CredentialStore,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._on_logout = on_logout
        self._latched = False

    @property
    def triggered(self) -> bool:
        return self._latched

    def trigger_logout_once(self) -> bool:
        """Sign out if nobody has yet. Returns True only for the caller that did."""
        # No await between the check and the set.
        if self._latched:
            return False
        self._latched = True

        logger.warning("Session can no longer be renewed, signing out")
        self._store.clear()
        if self._on_logout is not None:
            self._on_logout()
        return True

    def reset(self) -> None:
        """Start a fresh session lifecycle (called after a successful login)."""
        self._latched = False
