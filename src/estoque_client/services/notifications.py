"""Notification feed: the only consumer of the push stream."""

from __future__ import annotations

import asyncio
import logging

from estoque_client.client import ApiClient
from estoque_client.config import Config
from estoque_client.models.notifications import Notification, NotificationResponse
from estoque_client.models.stream import StreamEvent
from estoque_client.stream import EventStreamClient
from estoque_client.utils.cache import QueryCache
from estoque_client.utils.errors import ServerError, TransportError

logger = logging.getLogger(__name__)

SCOPE = "notifications"


class NotificationFeed:
    """Cached view of the newest notifications.

    The cache is dropped whenever the stream announces a new notification,
    and polled instead while the stream is down.
    """

    def __init__(self, client: ApiClient, config: Config, cache: QueryCache | None = None) -> None:
        self._client = client
        self._config = config
        self._cache = cache or QueryCache(ttl=config.settings.cache_ttl)
        self._path = config.settings.notifications_path
        self._params = {"limite": str(config.tuning.notification_page_size), "page": "1"}

    async def latest(self, force: bool = False) -> list[Notification]:
        """Newest page of notifications, from cache unless ``force``."""
        key = self._cache.make_key(SCOPE, self._path, self._params)
        if not force:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        data = await self._client.request_json("GET", self._path, params=self._params)
        notifications = NotificationResponse.model_validate(data).data.docs
        self._cache.put(key, notifications, SCOPE)
        return notifications

    async def unread_count(self) -> int:
        return sum(1 for n in await self.latest() if not n.visualizada)

    def invalidate(self) -> None:
        self._cache.invalidate_scope(SCOPE)

    async def handle_event(self, event: StreamEvent) -> None:
        """Stream handler: drop the cached page and fetch it again."""
        logger.info(f"Stream event '{event.event}', refreshing notifications")
        self.invalidate()
        await self.latest()

    def attach(self, stream: EventStreamClient) -> None:
        """Register on the stream for the configured notification event type."""
        stream.on(self._config.tuning.notification_event, self.handle_event)

    async def mark_read(self, notification_id: str) -> None:
        await self._client.patch(f"{self._path}/{notification_id}/visualizar", body={})
        self.invalidate()

    async def mark_all_read(self) -> int:
        """Mark every unread notification on the newest page as read."""
        unread = [n for n in await self.latest(force=True) if not n.visualizada]
        if unread:
            await asyncio.gather(
                *(self._client.patch(f"{self._path}/{n.id}/visualizar", body={}) for n in unread)
            )
        self.invalidate()
        return len(unread)

    async def poll(self, stream: EventStreamClient) -> None:
        """Refetch every poll_interval seconds while the stream is not connected.

        Runs until cancelled.
        """
        interval = self._config.tuning.poll_interval
        while True:
            await asyncio.sleep(interval)
            if stream.connected:
                continue
            logger.debug("Stream not connected, polling notifications")
            self.invalidate()
            try:
                await self.latest()
            except (TransportError, ServerError) as e:
                logger.warning(f"Notification poll failed: {e}")
