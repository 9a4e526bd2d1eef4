"""Server-sent notification stream.

One asyncio task per subscription runs the connection state machine:
CONNECTING -> OPEN -> RECONNECTING -> CONNECTING ... until the reconnect
budget is spent (DISCONNECTED) or the consumer unsubscribes (ABORTED).
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

import httpx

from estoque_client.config import Config
from estoque_client.models.stream import StreamConnection, StreamEvent, StreamState
from estoque_client.store import CredentialStore

logger = logging.getLogger(__name__)


EventHandler = Callable[[StreamEvent], Union[Awaitable[Any], Any]]


def compute_backoff(attempt: int, base: float, cap: float) -> float:
    """Delay before reconnect number ``attempt`` (0-based)."""
    return min(base * (2 ** attempt), cap)


class EventFrameParser:
    """Incremental parser for ``event:``/``data:`` frames separated by blank lines."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[StreamEvent]:
        """Add decoded text; return every frame completed by it."""
        self._buffer += chunk.replace("\r\n", "\n")
        *frames, self._buffer = self._buffer.split("\n\n")

        events = []
        for frame in frames:
            if not frame.strip():
                continue
            event_type = ""
            data = ""
            for line in frame.split("\n"):
                if line.startswith("event:"):
                    event_type = line[6:].strip()
                elif line.startswith("data:"):
                    data = line[5:].strip()
            if event_type and data:
                events.append(StreamEvent(event=event_type, data=data))
        return events

    def reset(self) -> None:
        self._buffer = ""


class EventStreamClient:
    """Long-lived authenticated connection to the notification stream."""

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._store = store
        # No read timeout: the stream idles between events.
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(None, connect=config.settings.request_timeout))
        self._handlers: dict[str, list[EventHandler]] = {}
        self._connection = StreamConnection()
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> StreamState:
        return self._connection.state

    @property
    def connection(self) -> StreamConnection:
        return self._connection.model_copy()

    @property
    def connected(self) -> bool:
        return self._connection.state == StreamState.OPEN

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for one event type. Other types are dropped."""
        self._handlers.setdefault(event_type, []).append(handler)

    def subscribe(self) -> None:
        """Start the connection loop (no-op if it is already running)."""
        running = self._task is not None and not self._task.done()
        if running and self._connection.state != StreamState.ABORTED:
            return
        self._connection = StreamConnection()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def abort(self) -> None:
        """Stop dispatching and cancel the loop without waiting for it.

        For synchronous callers such as the sign-out callback; the task is
        still awaited by a later unsubscribe() or close().
        """
        self._connection.state = StreamState.ABORTED
        if self._task is not None and not self._task.done():
            logger.info("Aborting notification stream")
            self._task.cancel()

    async def unsubscribe(self) -> None:
        """Tear down: cancel the in-flight read or pending reconnect."""
        self._connection.state = StreamState.ABORTED
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def wait_stopped(self) -> None:
        """Wait until the loop gives up (or is unsubscribed)."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> None:
        while True:
            credential = self._store.read()
            if credential is None:
                logger.info("No credential, notification stream stays disconnected")
                self._connection.state = StreamState.DISCONNECTED
                return

            self._connection.state = StreamState.CONNECTING
            try:
                await self._connect(credential.access_token)
            except httpx.HTTPError as e:
                self._connection.last_error = str(e) or type(e).__name__
                logger.warning(f"Notification stream error: {self._connection.last_error}")

            if self._connection.state == StreamState.ABORTED:
                return
            if not await self._backoff():
                return

    async def _connect(self, access_token: str) -> None:
        """Open the stream and dispatch frames until the server closes it."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "text/event-stream",
        }
        url = self._config.url(self._config.settings.stream_path)

        async with self._http.stream("GET", url, headers=headers) as response:
            if response.status_code != 200:
                self._connection.last_error = f"HTTP {response.status_code}"
                logger.warning(f"Notification stream refused: HTTP {response.status_code}")
                return

            self._connection.state = StreamState.OPEN
            self._connection.attempt = 0
            self._connection.last_error = None
            logger.info("Notification stream open")

            parser = EventFrameParser()
            async for chunk in response.aiter_text():
                for event in parser.feed(chunk):
                    if self._connection.state == StreamState.ABORTED:
                        return
                    await self._dispatch(event)

        logger.info("Notification stream closed by server")

    async def _backoff(self) -> bool:
        """Sleep before the next attempt. False once the attempt budget is spent."""
        tuning = self._config.tuning
        attempt = self._connection.attempt
        if attempt >= tuning.max_reconnect_attempts:
            logger.warning(f"Giving up on notification stream after {attempt} reconnect attempts")
            self._connection.state = StreamState.DISCONNECTED
            return False

        delay = compute_backoff(attempt, tuning.reconnect_base_delay, tuning.reconnect_max_delay)
        self._connection.attempt = attempt + 1
        self._connection.state = StreamState.RECONNECTING
        logger.info(f"Reconnecting notification stream in {delay:.1f}s (attempt {attempt + 1})")
        await asyncio.sleep(delay)
        return True

    async def _dispatch(self, event: StreamEvent) -> None:
        handlers = self._handlers.get(event.event)
        if not handlers:
            logger.debug(f"Ignoring stream event '{event.event}'")
            return

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Handler for stream event '{event.event}' failed")

    async def close(self) -> None:
        """Unsubscribe and close the underlying HTTP client."""
        await self.unsubscribe()
        await self._http.aclose()
