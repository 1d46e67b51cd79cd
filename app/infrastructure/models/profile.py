"""SQLAlchemy model for public user profiles."""

from sqlalchemy import Column, String

from app.infrastructure.database import Base


class ProfileModel(Base):
    """Public profile attached to an authenticated account."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    username = Column(String(50), nullable=True, unique=True, index=True)
    display_name = Column(String(120), nullable=True)
    avatar_url = Column(String(500), nullable=True)


__all__ = ["ProfileModel"]
