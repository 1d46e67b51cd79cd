"""SQLAlchemy model for likes on posts."""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base


class PostLikeModel(Base):
    """A like left by a profile on a post."""

    __tablename__ = "post_likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),)

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id"), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=True, index=True)

    post = relationship("PostModel")
    actor = relationship("ProfileModel")


__all__ = ["PostLikeModel"]
