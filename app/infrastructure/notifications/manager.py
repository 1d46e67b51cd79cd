"""Connection management helpers for notification websockets."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, DefaultDict, Set

from fastapi import WebSocket


class NotificationConnectionManager:
    """Manage active websocket connections grouped by viewer."""

    def __init__(self) -> None:
        self._connections: DefaultDict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, viewer_id: str, websocket: WebSocket) -> None:
        """Accept the websocket connection and register it for ``viewer_id``."""

        await websocket.accept()
        self._connections[viewer_id].add(websocket)

    def disconnect(self, viewer_id: str, websocket: WebSocket) -> bool:
        """Remove ``websocket`` from the pool for ``viewer_id``.

        Returns ``True`` when the viewer has no connection left.
        """

        connections = self._connections.get(viewer_id)
        if connections is None:
            return True
        connections.discard(websocket)
        if not connections:
            self._connections.pop(viewer_id, None)
            return True
        return False

    def has_connections(self, viewer_id: str) -> bool:
        """Keep-alive check used by the feed registry for idle viewers."""

        return bool(self._connections.get(viewer_id))

    async def send_to_viewer(self, viewer_id: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every active connection for ``viewer_id``."""

        connections = list(self._connections.get(viewer_id, set()))
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception:  # pragma: no cover - defensive cleanup
                self.disconnect(viewer_id, connection)


notification_manager = NotificationConnectionManager()


__all__ = ["NotificationConnectionManager", "notification_manager"]
