"""Domain entities exposed by the application."""

from .feed_snapshot import FeedSnapshot, RefreshState
from .like_event import ActorRef, LikeEvent
from .notification_group import GroupActor, NotificationGroup

__all__ = [
    "ActorRef",
    "FeedSnapshot",
    "GroupActor",
    "LikeEvent",
    "NotificationGroup",
    "RefreshState",
]
