"""Query helpers that read like events from the feed tables."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import ActorRef, LikeEvent
from app.domain.errors import MalformedRow
from app.infrastructure.models import PostLikeModel, PostModel, ProfileModel
from app.utils import ensure_utc, ensure_utc_naive

logger = logging.getLogger(__name__)

FALLBACK_USERNAME = "Someone"


class LikeEventRepository:
    """Read likes left on the posts of a given owner."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_since(
        self,
        owner_id: str,
        *,
        since_exclusive: datetime,
        limit: int = 40,
    ) -> list[LikeEvent]:
        """Return likes newer than ``since_exclusive``, most recent first.

        Only the ``limit`` most recent rows are returned. Rows that cannot be
        mapped to a :class:`LikeEvent` are logged and skipped.
        """

        query = (
            self.session.query(
                PostLikeModel.id,
                PostLikeModel.post_id,
                PostLikeModel.created_at,
                PostModel.content.label("post_content"),
                ProfileModel.id.label("actor_id"),
                ProfileModel.username,
                ProfileModel.display_name,
                ProfileModel.avatar_url,
            )
            .join(PostModel, PostLikeModel.post_id == PostModel.id)
            .outerjoin(ProfileModel, PostLikeModel.user_id == ProfileModel.id)
            .filter(PostModel.user_id == owner_id)
            .filter(PostLikeModel.created_at > ensure_utc_naive(since_exclusive))
            .order_by(PostLikeModel.created_at.desc(), PostLikeModel.id.desc())
            .limit(limit)
        )

        events: list[LikeEvent] = []
        for row in query.all():
            try:
                events.append(self._to_entity(row))
            except MalformedRow as exc:
                logger.warning("Skipping like row for owner %s: %s", owner_id, exc)
        return events

    @staticmethod
    def _to_entity(row: Any) -> LikeEvent:
        event_id = getattr(row, "id", None)
        if event_id is None:
            raise MalformedRow("id")
        for field_name in ("post_id", "created_at"):
            if getattr(row, field_name, None) is None:
                raise MalformedRow(field_name, event_id)

        actor = ActorRef(
            username=getattr(row, "username", None) or FALLBACK_USERNAME,
            display_name=getattr(row, "display_name", None),
            avatar_url=getattr(row, "avatar_url", None),
            id=getattr(row, "actor_id", None),
        )
        return LikeEvent(
            event_id=str(event_id),
            post_id=str(row.post_id),
            actor=actor,
            occurred_at=ensure_utc(row.created_at),
            post_content=getattr(row, "post_content", None) or "",
        )


__all__ = ["FALLBACK_USERNAME", "LikeEventRepository"]
