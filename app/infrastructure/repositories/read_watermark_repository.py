"""Persistence helpers for per-viewer notification read watermarks."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.infrastructure.models import NotificationReadStateModel
from app.utils import parse_iso, to_iso


class ReadWatermarkRepository:
    """Store one ``last read at`` timestamp per viewer."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, viewer_id: str) -> datetime | None:
        """Return the stored watermark or ``None`` when the viewer has none.

        Raises ``ValueError`` when the stored value is not a valid timestamp.
        """

        model = self.session.get(NotificationReadStateModel, viewer_id)
        if model is None:
            return None
        return parse_iso(model.last_read_at)

    def save(self, viewer_id: str, value: datetime) -> datetime:
        """Write ``value`` for ``viewer_id`` in a single transaction."""

        try:
            model = self.session.get(NotificationReadStateModel, viewer_id)
            if model is None:
                model = NotificationReadStateModel(viewer_id=viewer_id)
            model.last_read_at = to_iso(value)
            self.session.add(model)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return value


__all__ = ["ReadWatermarkRepository"]
