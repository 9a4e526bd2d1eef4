"""Credential storage.

The store holds exactly one value and swaps it whole, so reads never need a
lock and a replace is visible to the very next read.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from estoque_client.models.auth import Credential

logger = logging.getLogger(__name__)


class SessionFile:
    """Persistent copy of the credential for the CLI.

    Stored as JSON at ``session_file`` (``./data/session.json`` by default).
    """

    def __init__(self, path: str | Path) -> None:
        self._file = Path(path)

    @property
    def path(self) -> Path:
        return self._file

    def load(self) -> Credential | None:
        """Load the saved credential, or None if absent or unreadable."""
        if not self._file.exists():
            return None
        try:
            with open(self._file) as f:
                return Credential(**json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self._file}: {e}")
            return None

    def save(self, credential: Credential) -> None:
        self._file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._file, "w") as f:
            json.dump(credential.model_dump(mode="json"), f, indent=2)

    def delete(self) -> None:
        self._file.unlink(missing_ok=True)


class CredentialStore:
    """Holds the current credential; optionally writes through to a SessionFile."""

    def __init__(
        self,
        credential: Credential | None = None,
        session_file: SessionFile | None = None,
    ) -> None:
        self._credential = credential
        self._session_file = session_file

    @classmethod
    def from_file(cls, session_file: SessionFile) -> CredentialStore:
        """Build a store seeded from a saved session."""
        return cls(session_file.load(), session_file)

    def read(self) -> Credential | None:
        return self._credential

    def replace(self, credential: Credential) -> None:
        self._credential = credential
        if self._session_file is not None:
            self._session_file.save(credential)

    def clear(self) -> None:
        self._credential = None
        if self._session_file is not None:
            self._session_file.delete()
