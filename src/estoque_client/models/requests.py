"""Request bookkeeping for the authenticated executor."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from estoque_client.models.auth import Credential


class PendingRequest(BaseModel):
    """What ApiClient needs to replay a request once with a new credential."""
    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    body: Any = None
    params: dict[str, str] | None = None
    credential: Credential | None = None
    retried: bool = False
