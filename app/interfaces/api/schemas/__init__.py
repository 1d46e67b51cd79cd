from .notification import (
    NotificationActivateRequest,
    NotificationActorRead,
    NotificationFeedRead,
    NotificationGroupRead,
    UnreadCountRead,
)

__all__ = [
    "NotificationActivateRequest",
    "NotificationActorRead",
    "NotificationFeedRead",
    "NotificationGroupRead",
    "UnreadCountRead",
]
