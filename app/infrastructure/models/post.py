"""SQLAlchemy model for feed posts."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func

from app.infrastructure.database import Base


class PostModel(Base):
    """A post published by a profile."""

    __tablename__ = "posts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    content = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["PostModel"]
