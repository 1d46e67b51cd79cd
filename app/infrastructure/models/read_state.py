"""SQLAlchemy model for the locally persisted notification read watermark."""

from sqlalchemy import Column, String

from app.infrastructure.database import StateBase


class NotificationReadStateModel(StateBase):
    """One row per viewer holding the ISO-8601 ``last read at`` timestamp."""

    __tablename__ = "notification_read_state"

    viewer_id = Column(String(64), primary_key=True)
    last_read_at = Column(String(40), nullable=False)


__all__ = ["NotificationReadStateModel"]
