"""Auth-related data models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """The current access/refresh token pair and the access token's expiry."""
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    access_expires_at: datetime

    def time_until_expiry(self, now: datetime | None = None) -> float:
        """Seconds left before the access token expires (negative once expired)."""
        now = now or datetime.now()
        return (self.access_expires_at - now).total_seconds()


class Renewed(BaseModel):
    """Refresh succeeded."""
    kind: Literal["renewed"] = "renewed"
    credential: Credential


class Failed(BaseModel):
    """Refresh failed; ``reason`` is for logs only."""
    kind: Literal["failed"] = "failed"
    reason: str


RefreshOutcome = Union[Renewed, Failed]


class AuthUser(BaseModel):
    """User block of the identity provider's login/refresh response."""
    model_config = ConfigDict(populate_by_name=True)

    accesstoken: str = Field(min_length=1)
    refreshtoken: str | None = None
    id: str | None = Field(default=None, alias="_id")
    nome: str | None = None
    email: str | None = None
    ativo: bool | None = None
    foto_perfil: str | None = Field(default=None, alias="fotoPerfil")


class AuthData(BaseModel):
    user: AuthUser


class AuthEnvelope(BaseModel):
    """Response from the /login and /refresh endpoints."""
    error: bool = False
    code: int | None = None
    message: str = ""
    data: AuthData


class TokenStatus(BaseModel):
    """Current state of the stored access token."""
    has_token: bool
    is_expired: bool
    expires_at: datetime | None = None
    seconds_remaining: int | None = None
    refresh_due: bool = False
