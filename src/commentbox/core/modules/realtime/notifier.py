"""Best-effort broadcast of comment events to connected clients.

Delivery is not guaranteed, not ordered across clients and not persisted.
Broadcasting never raises into the caller.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog
from fastapi import WebSocket

from commentbox.core.modules.realtime.models import CommentEvent

logger = structlog.get_logger(__name__)


class Notifier(ABC):
    """Fire-and-forget event sink."""

    @abstractmethod
    def broadcast(self, event: CommentEvent, payload: dict[str, Any]) -> None:
        """Schedule delivery of `payload` to every connected client and return immediately."""

    async def aclose(self) -> None:
        """Wait for pending deliveries on shutdown."""


class NullNotifier(Notifier):
    """Discards all events."""

    def broadcast(self, event: CommentEvent, payload: dict[str, Any]) -> None:
        pass


class WebSocketNotifier(Notifier):
    """Keeps a registry of open WebSockets and fans events out to all of them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("websocket_connected", connections=len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        self._connections.discard(websocket)
        logger.info("websocket_disconnected", connections=len(self._connections))

    def broadcast(self, event: CommentEvent, payload: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("broadcast_skipped", event_name=str(event))
            return
        task = loop.create_task(self._send_all(event, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send_all(self, event: CommentEvent, payload: dict[str, Any]) -> None:
        message = {"event": str(event), "data": payload}
        try:
            for connection in list(self._connections):
                try:
                    await connection.send_json(message)
                except Exception:  # noqa: BLE001
                    logger.warning("broadcast_connection_dropped", event_name=str(event))
                    self.disconnect(connection)
        except Exception:
            logger.exception("broadcast_failed", event_name=str(event))

    async def aclose(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
