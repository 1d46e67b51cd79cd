"""Per-viewer registry of notification feed coordinators."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable

from .aggregate_likes import DEFAULT_SNIPPET_LENGTH
from .refresh_coordinator import (
    DEFAULT_FETCH_LIMIT,
    LikeEventSource,
    NotificationFeedCoordinator,
    SnapshotListener,
    WatermarkStore,
)

logger = logging.getLogger(__name__)


class NotificationFeedRegistry:
    """Create and keep one :class:`NotificationFeedCoordinator` per viewer.

    Viewers never share a coordinator, so their fetches and watermarks stay
    independent. When ``idle_ttl`` is set, coordinators of viewers that made
    no request for that many seconds and have no open connection (as told by
    ``is_connected``) are released on the next :meth:`get`.

    A coordinator created for a viewer whose previous coordinator was released
    mid-fetch waits for that fetch before starting its own.
    """

    def __init__(
        self,
        source: LikeEventSource,
        watermarks: WatermarkStore,
        *,
        limit: int = DEFAULT_FETCH_LIMIT,
        timeout: float | None = None,
        snippet_length: int = DEFAULT_SNIPPET_LENGTH,
        poll_interval: float | None = None,
        idle_ttl: float | None = None,
        listeners: Iterable[SnapshotListener] = (),
        is_connected: Callable[[str], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._watermarks = watermarks
        self._limit = limit
        self._timeout = timeout
        self._snippet_length = snippet_length
        self._poll_interval = poll_interval
        self._idle_ttl = idle_ttl
        self._listeners = tuple(listeners)
        self._is_connected = is_connected
        self._clock = clock
        self._coordinators: dict[str, NotificationFeedCoordinator] = {}
        self._last_used: dict[str, float] = {}
        self._draining: dict[str, asyncio.Task[None]] = {}

    def __contains__(self, viewer_id: object) -> bool:
        return viewer_id in self._coordinators

    def __len__(self) -> int:
        return len(self._coordinators)

    def lookup(self, viewer_id: str) -> NotificationFeedCoordinator | None:
        """Return the live coordinator of ``viewer_id`` without creating one."""

        return self._coordinators.get(viewer_id)

    def get(self, viewer_id: str) -> NotificationFeedCoordinator:
        """Return the coordinator for ``viewer_id``, creating it on first use.

        Must be called from the event loop when polling is configured.
        """

        now = self._clock()
        self._release_idle(now, keep=viewer_id)

        coordinator = self._coordinators.get(viewer_id)
        if coordinator is not None and coordinator.disposed:
            self.release(viewer_id)
            coordinator = None
        if coordinator is None:
            coordinator = NotificationFeedCoordinator(
                viewer_id,
                self._source,
                self._watermarks,
                limit=self._limit,
                timeout=self._timeout,
                snippet_length=self._snippet_length,
                predecessor=self._draining.pop(viewer_id, None),
            )
            for listener in self._listeners:
                coordinator.subscribe(listener)
            self._coordinators[viewer_id] = coordinator
            logger.debug("Created notification coordinator for viewer %s", viewer_id)

        if self._poll_interval:
            coordinator.start_polling(self._poll_interval)
        self._last_used[viewer_id] = now
        return coordinator

    def suspend(self, viewer_id: str) -> None:
        """Stop periodic refreshes for ``viewer_id`` until its next request."""

        coordinator = self._coordinators.get(viewer_id)
        if coordinator is not None:
            coordinator.stop_polling()

    def release(self, viewer_id: str) -> None:
        """Dispose the coordinator of ``viewer_id`` and forget it."""

        self._last_used.pop(viewer_id, None)
        coordinator = self._coordinators.pop(viewer_id, None)
        if coordinator is None:
            return
        inflight = coordinator.inflight
        coordinator.dispose()
        self._draining = {
            key: task for key, task in self._draining.items() if not task.done()
        }
        if inflight is not None:
            self._draining[viewer_id] = inflight

    def close(self) -> None:
        """Dispose every coordinator."""

        for viewer_id in list(self._coordinators):
            self.release(viewer_id)
        self._draining.clear()

    def _release_idle(self, now: float, *, keep: str) -> None:
        if not self._idle_ttl:
            return
        for viewer_id, last_used in list(self._last_used.items()):
            if viewer_id == keep or now - last_used < self._idle_ttl:
                continue
            if self._is_connected is not None and self._is_connected(viewer_id):
                continue
            coordinator = self._coordinators.get(viewer_id)
            if coordinator is not None and coordinator.is_fetching:
                continue
            logger.info("Releasing idle notification coordinator for viewer %s", viewer_id)
            self.release(viewer_id)


__all__ = ["NotificationFeedRegistry"]
