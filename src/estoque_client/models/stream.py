"""Notification stream data models."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel


class StreamState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    ABORTED = "aborted"


class StreamConnection(BaseModel):
    """Connection bookkeeping owned by EventStreamClient."""
    state: StreamState = StreamState.DISCONNECTED
    attempt: int = 0
    last_error: str | None = None


class StreamEvent(BaseModel):
    """One dispatched ``event:``/``data:`` frame."""
    event: str
    data: str

    def payload(self) -> Any:
        """Decode the payload as JSON."""
        return json.loads(self.data)
