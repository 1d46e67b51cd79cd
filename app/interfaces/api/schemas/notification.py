"""Pydantic models describing notification feed payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class NotificationActivateRequest(BaseModel):
    """Optional payload sent when the viewer opens the notifications view."""

    read_at: datetime | None = Field(
        default=None,
        description="Moment the viewer read the feed; defaults to the server time",
    )


class NotificationActorRead(BaseModel):
    """An actor listed in a notification group."""

    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    name: str
    occurred_at: datetime


class NotificationGroupRead(BaseModel):
    """All likes on one post, ready for display."""

    post_id: str
    summary: str
    post_content_snippet: str = ""
    lead_actor: NotificationActorRead
    actors: list[NotificationActorRead] = Field(default_factory=list)
    actor_count: int
    latest_event_at: datetime
    relative_time: str


class NotificationFeedRead(BaseModel):
    """Snapshot of the viewer's like notifications."""

    viewer_id: str
    state: str
    unread_count: int = 0
    error: str | None = None
    last_read_at: datetime | None = None
    fetched_at: datetime | None = None
    hydrated: bool = Field(
        default=False,
        description="Whether the persisted read state was loaded before counting",
    )
    groups: list[NotificationGroupRead] = Field(default_factory=list)


class UnreadCountRead(BaseModel):
    """Badge counter for the notifications tab."""

    unread_count: int


__all__ = [
    "NotificationActivateRequest",
    "NotificationActorRead",
    "NotificationFeedRead",
    "NotificationGroupRead",
    "UnreadCountRead",
]
