"""Domain entities describing like events delivered by the event source."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ActorRef:
    """Denormalized profile of the user who performed a like."""

    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    id: str | None = None

    @property
    def identity(self) -> str:
        """Return the key used to recognise the same actor across events."""

        return self.id or self.username

    @property
    def name(self) -> str:
        """Return the display name when set, otherwise the username."""

        if self.display_name and self.display_name.strip():
            return self.display_name
        return self.username


@dataclass(frozen=True)
class LikeEvent:
    """A single like on one of the viewer's posts."""

    event_id: str
    post_id: str
    actor: ActorRef
    occurred_at: datetime
    post_content: str | None = None


__all__ = ["ActorRef", "LikeEvent"]
