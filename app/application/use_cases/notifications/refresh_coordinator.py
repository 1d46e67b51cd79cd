"""Coordinate fetch, aggregation and read tracking for one viewer's feed."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol, Sequence

import anyio

from app.domain.entities import FeedSnapshot, LikeEvent, NotificationGroup, RefreshState
from app.domain.errors import PersistenceFailure, SourceUnavailable
from app.utils import EPOCH, ensure_utc, now_utc

from .aggregate_likes import DEFAULT_SNIPPET_LENGTH, aggregate_likes

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 40

_GENERIC_ERROR = "Notifications could not be loaded"

SnapshotListener = Callable[[FeedSnapshot], Awaitable[None]]


class LikeEventSource(Protocol):
    async def fetch_likes_since(
        self,
        viewer_id: str,
        since_exclusive: datetime,
        limit: int,
        *,
        timeout: float | None = None,
    ) -> Sequence[LikeEvent]: ...


class WatermarkStore(Protocol):
    async def get(self, viewer_id: str) -> datetime: ...

    async def set(self, viewer_id: str, value: datetime) -> datetime: ...


@dataclass(frozen=True)
class _Run:
    """A unit of work for the fetch pipeline."""

    mark_read: bool
    read_time: datetime | None = None


class NotificationFeedCoordinator:
    """Drive the like-notification pipeline for a single viewer.

    Trigger methods (:meth:`activate`, :meth:`manual_refresh` and
    :meth:`on_external_invalidation`) never run two fetches at once. A trigger
    that arrives while a fetch is in flight joins it, unless it needs work the
    running fetch does not do; in that case one follow-up run is queued.

    Only :meth:`activate` marks notifications as read. It advances the read
    watermark and clears the unread count before fetching, whether or not the
    fetch then succeeds. After :meth:`dispose`, results of fetches still in
    flight are discarded. A ``predecessor`` task, typically the fetch of a
    disposed coordinator for the same viewer, is awaited before the first
    fetch starts.

    Failures never escape a trigger: they are recorded in :attr:`error`.
    """

    def __init__(
        self,
        viewer_id: str,
        source: LikeEventSource,
        watermarks: WatermarkStore,
        *,
        limit: int = DEFAULT_FETCH_LIMIT,
        timeout: float | None = None,
        snippet_length: int = DEFAULT_SNIPPET_LENGTH,
        clock: Callable[[], datetime] = now_utc,
        predecessor: asyncio.Future[None] | None = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be a positive integer")
        self.viewer_id = viewer_id
        self._source = source
        self._watermarks = watermarks
        self._limit = limit
        self._timeout = timeout
        self._snippet_length = snippet_length
        self._clock = clock

        self._state = RefreshState.IDLE
        self._groups: tuple[NotificationGroup, ...] = ()
        self._unread_count = 0
        self._last_read_at: datetime | None = None
        self._error: str | None = None
        self._fetched_at: datetime | None = None
        self._hydrated = False

        self._generation = 0
        self._disposed = False
        self._inflight: asyncio.Task[None] | None = None
        self._current: _Run | None = None
        self._pending: _Run | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._listeners: list[SnapshotListener] = []
        # Work left running by a disposed coordinator for the same viewer.
        self._predecessor = predecessor

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def groups(self) -> tuple[NotificationGroup, ...]:
        return self._groups

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def inflight(self) -> asyncio.Task[None] | None:
        """Return the running fetch task, if any."""

        return self._inflight if self.is_fetching else None

    def snapshot(self) -> FeedSnapshot:
        """Return the state to render right now."""

        return FeedSnapshot(
            viewer_id=self.viewer_id,
            state=self._state,
            groups=self._groups,
            unread_count=self._unread_count,
            last_read_at=self._last_read_at,
            error=self._error,
            fetched_at=self._fetched_at,
            hydrated=self._hydrated,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def activate(self, read_time: datetime | None = None) -> FeedSnapshot:
        """The viewer is looking at the feed: fetch and mark everything as read."""

        run = _Run(mark_read=True, read_time=read_time)
        queue = self._current is not None and not self._current.mark_read
        return await self._trigger(run, queue_if_busy=queue)

    async def manual_refresh(self) -> FeedSnapshot:
        """Pull-to-refresh: fetch again without marking anything as read."""

        return await self._trigger(_Run(mark_read=False), queue_if_busy=False)

    async def on_external_invalidation(self) -> FeedSnapshot:
        """A realtime signal reported new likes: refetch without marking read."""

        return await self._trigger(_Run(mark_read=False), queue_if_busy=True)

    def start_polling(self, interval: float) -> None:
        """Refresh every ``interval`` seconds until stopped or disposed."""

        if interval <= 0:
            raise ValueError("interval must be greater than zero")
        if self._disposed:
            return
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll(interval))

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    def dispose(self) -> None:
        """Detach the consumer; in-flight and queued work will not apply."""

        self._disposed = True
        self._generation += 1
        self._pending = None
        self.stop_polling()
        self._listeners.clear()

    async def _trigger(self, run: _Run, *, queue_if_busy: bool) -> FeedSnapshot:
        if self._disposed:
            return self.snapshot()

        task = self._inflight
        if task is not None and not task.done():
            if queue_if_busy:
                self._pending = self._merge(self._pending, run)
        else:
            self._current = run
            task = asyncio.get_running_loop().create_task(self._drain(run))
            self._inflight = task

        # Cancelling one caller must not cancel the fetch shared with others.
        await asyncio.shield(task)
        return self.snapshot()

    @staticmethod
    def _merge(pending: _Run | None, run: _Run) -> _Run:
        if pending is None:
            return run
        if run.mark_read:
            return run
        return pending

    async def _drain(self, run: _Run) -> None:
        generation = self._generation
        if self._predecessor is not None:
            await asyncio.wait({self._predecessor})
            self._predecessor = None

        next_run: _Run | None = run
        try:
            while next_run is not None and generation == self._generation:
                self._current = next_run
                try:
                    await self._execute(next_run, generation)
                except Exception:
                    logger.exception(
                        "Unexpected error refreshing notifications for viewer %s", self.viewer_id
                    )
                    await self._fail(next_run, generation, _GENERIC_ERROR)
                next_run, self._pending = self._pending, None
        finally:
            self._current = None

    async def _execute(self, run: _Run, generation: int) -> None:
        # The lower bound is the watermark in effect when this run starts.
        since = await self._watermarks.get(self.viewer_id)
        if generation != self._generation:
            return
        self._last_read_at = since
        self._hydrated = True

        self._state = RefreshState.LOADING if run.mark_read else RefreshState.REFRESHING
        if run.mark_read:
            await self._mark_read(run.read_time)
        await self._publish(generation)
        if generation != self._generation:
            return

        try:
            events = await self._fetch(since)
        except SourceUnavailable as exc:
            logger.warning("Notification refresh for viewer %s failed: %s", self.viewer_id, exc)
            await self._fail(run, generation, str(exc) or _GENERIC_ERROR)
            return

        if generation != self._generation:
            logger.debug("Discarding notifications fetched for disposed viewer %s", self.viewer_id)
            return

        self._groups = tuple(aggregate_likes(events, snippet_length=self._snippet_length))
        if not run.mark_read:
            self._unread_count = len(events)
        self._error = None
        self._fetched_at = self._clock()
        self._state = RefreshState.IDLE
        await self._publish(generation)

    async def _fail(self, run: _Run, generation: int, message: str) -> None:
        if generation != self._generation:
            return
        self._error = message
        # Only a failed activation leaves the feed in the error state.
        self._state = RefreshState.ERROR if run.mark_read else RefreshState.IDLE
        await self._publish(generation)

    async def _fetch(self, since: datetime) -> Sequence[LikeEvent]:
        if self._timeout is None:
            return await self._source.fetch_likes_since(
                self.viewer_id, since, self._limit, timeout=None
            )
        try:
            with anyio.fail_after(self._timeout):
                return await self._source.fetch_likes_since(
                    self.viewer_id, since, self._limit, timeout=self._timeout
                )
        except TimeoutError as exc:
            raise SourceUnavailable("The notification service took too long to respond") from exc

    async def _mark_read(self, read_time: datetime | None) -> None:
        target = ensure_utc(read_time) if read_time is not None else self._clock()
        self._unread_count = 0
        try:
            self._last_read_at = await self._watermarks.set(self.viewer_id, target)
        except PersistenceFailure as exc:
            logger.warning(
                "Read state for viewer %s kept in memory only: %s", self.viewer_id, exc
            )
            self._last_read_at = max(self._last_read_at or EPOCH, target)

    async def _publish(self, generation: int) -> None:
        if generation != self._generation or not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception:  # pragma: no cover - listener isolation
                logger.exception("Notification listener failed for viewer %s", self.viewer_id)

    async def _poll(self, interval: float) -> None:
        while not self._disposed:
            await asyncio.sleep(interval)
            try:
                await self.on_external_invalidation()
            except Exception:  # pragma: no cover - background polling guard
                logger.exception("Periodic notification refresh failed for viewer %s", self.viewer_id)


__all__ = [
    "DEFAULT_FETCH_LIMIT",
    "LikeEventSource",
    "NotificationFeedCoordinator",
    "SnapshotListener",
    "WatermarkStore",
]
