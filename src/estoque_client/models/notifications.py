"""Notification-related data models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Notification(BaseModel):
    """A single user notification."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    mensagem: str
    data_hora: str
    visualizada: bool = False
    usuario: str | None = None


class NotificationPage(BaseModel):
    """Paginated list of notifications."""
    model_config = ConfigDict(populate_by_name=True)

    docs: list[Notification] = Field(default_factory=list)
    total_docs: int = Field(default=0, alias="totalDocs")
    page: int = 1
    total_pages: int = Field(default=1, alias="totalPages")
    has_next_page: bool = Field(default=False, alias="hasNextPage")
    has_prev_page: bool = Field(default=False, alias="hasPrevPage")


class NotificationResponse(BaseModel):
    """Envelope returned by GET /notificacoes."""
    error: bool = False
    message: str = ""
    data: NotificationPage
