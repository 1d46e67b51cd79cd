"""Derived notification entities built from like events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .like_event import ActorRef


@dataclass(frozen=True)
class GroupActor:
    """An actor inside a group together with the time of their latest like."""

    actor: ActorRef
    occurred_at: datetime


@dataclass(frozen=True)
class NotificationGroup:
    """All likes on one post collapsed into a single notification entry.

    ``actors`` is ordered most recent first and holds one entry per actor.
    Groups are recomputed on every fetch and never persisted.
    """

    post_id: str
    post_content_snippet: str
    actors: tuple[GroupActor, ...]
    latest_event_at: datetime
    summary: str

    @property
    def lead_actor(self) -> ActorRef:
        """Return the most recent liker, whose name and avatar lead the entry."""

        return self.actors[0].actor

    @property
    def actor_count(self) -> int:
        return len(self.actors)


__all__ = ["GroupActor", "NotificationGroup"]
