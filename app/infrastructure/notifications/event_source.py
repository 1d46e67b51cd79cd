"""Async adapter that queries the feed tables for like events."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import anyio
from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import LikeEvent
from app.domain.errors import SourceUnavailable
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import LikeEventRepository

logger = logging.getLogger(__name__)


class SqlLikeEventSource:
    """Fetch like events through SQLAlchemy without blocking the event loop.

    Each call opens its own session in a worker thread. Query errors and
    timeouts surface as :class:`SourceUnavailable`.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        default_timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._default_timeout = default_timeout

    async def fetch_likes_since(
        self,
        viewer_id: str,
        since_exclusive: datetime,
        limit: int,
        *,
        timeout: float | None = None,
    ) -> list[LikeEvent]:
        """Return up to ``limit`` likes on ``viewer_id``'s posts after ``since_exclusive``."""

        if limit < 1:
            raise ValueError("limit must be a positive integer")

        deadline = timeout if timeout is not None else self._default_timeout
        try:
            if deadline is None:
                return await to_thread.run_sync(
                    self._query, viewer_id, since_exclusive, limit
                )
            with anyio.fail_after(deadline):
                return await to_thread.run_sync(
                    self._query,
                    viewer_id,
                    since_exclusive,
                    limit,
                    abandon_on_cancel=True,
                )
        except TimeoutError as exc:
            logger.warning(
                "Like query for viewer %s timed out after %.2fs", viewer_id, deadline
            )
            raise SourceUnavailable("The notification service took too long to respond") from exc
        except SQLAlchemyError as exc:
            logger.warning("Like query for viewer %s failed: %s", viewer_id, exc)
            raise SourceUnavailable("Notifications could not be loaded") from exc

    def _query(
        self, viewer_id: str, since_exclusive: datetime, limit: int
    ) -> list[LikeEvent]:
        session = self._session_factory()
        try:
            return LikeEventRepository(session).list_since(
                viewer_id, since_exclusive=since_exclusive, limit=limit
            )
        finally:
            session.close()


__all__ = ["SqlLikeEventSource"]
