"""Monotonic per-viewer read watermarks backed by the local state store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import PersistenceFailure
from app.infrastructure.database import StateSessionLocal
from app.infrastructure.repositories import ReadWatermarkRepository
from app.utils import EPOCH, ensure_utc

logger = logging.getLogger(__name__)


class ReadWatermarkStore:
    """Keep the ``last read at`` timestamp of each viewer.

    Values live in memory for the process lifetime and are written through to
    durable storage. The in-memory value advances even when the durable write
    fails; the failure is logged and raised as :class:`PersistenceFailure`.
    """

    def __init__(self, session_factory: Callable[[], Session] = StateSessionLocal) -> None:
        self._session_factory = session_factory
        self._values: dict[str, datetime] = {}

    def is_hydrated(self, viewer_id: str) -> bool:
        """Return ``True`` once the persisted value for ``viewer_id`` was loaded."""

        return viewer_id in self._values

    def peek(self, viewer_id: str) -> datetime:
        """Return the in-memory watermark without touching storage."""

        return self._values.get(viewer_id, EPOCH)

    async def hydrate(self, viewer_id: str) -> datetime:
        """Load the persisted watermark, falling back to the epoch on errors."""

        try:
            stored = await to_thread.run_sync(self._read, viewer_id)
        except (SQLAlchemyError, ValueError) as exc:
            logger.warning(
                "Failed to load notification watermark for viewer %s: %s", viewer_id, exc
            )
            stored = None

        # A concurrent ``set`` may have advanced the value while loading.
        current = self._values.get(viewer_id, EPOCH)
        value = max(current, stored or EPOCH)
        self._values[viewer_id] = value
        return value

    async def get(self, viewer_id: str) -> datetime:
        """Return the watermark for ``viewer_id``; the epoch if never set."""

        if viewer_id not in self._values:
            return await self.hydrate(viewer_id)
        return self._values[viewer_id]

    async def set(self, viewer_id: str, value: datetime) -> datetime:
        """Advance the watermark to ``value`` and persist it.

        Values that do not move the watermark forward are ignored and the
        current watermark is returned unchanged.
        """

        candidate = ensure_utc(value)
        current = await self.get(viewer_id)
        if candidate is None or candidate <= current:
            return current

        self._values[viewer_id] = candidate
        try:
            await to_thread.run_sync(self._write, viewer_id, candidate)
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to persist notification watermark for viewer %s: %s",
                viewer_id,
                exc,
            )
            raise PersistenceFailure(
                f"Read state for viewer {viewer_id} was not saved"
            ) from exc
        return candidate

    def _read(self, viewer_id: str) -> datetime | None:
        session = self._session_factory()
        try:
            return ReadWatermarkRepository(session).get(viewer_id)
        finally:
            session.close()

    def _write(self, viewer_id: str, value: datetime) -> None:
        session = self._session_factory()
        try:
            ReadWatermarkRepository(session).save(viewer_id, value)
        finally:
            session.close()


__all__ = ["ReadWatermarkStore"]
