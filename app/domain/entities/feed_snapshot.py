"""State exposed to the rendering layer for a viewer's notification feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .notification_group import NotificationGroup


class RefreshState(str, Enum):
    """Lifecycle of the fetch pipeline for a single viewer."""

    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"
    ERROR = "error"


@dataclass(frozen=True)
class FeedSnapshot:
    """Point-in-time view of groups, unread badge and refresh state."""

    viewer_id: str
    state: RefreshState
    groups: tuple[NotificationGroup, ...] = field(default_factory=tuple)
    unread_count: int = 0
    last_read_at: datetime | None = None
    error: str | None = None
    fetched_at: datetime | None = None
    hydrated: bool = False


__all__ = ["FeedSnapshot", "RefreshState"]
