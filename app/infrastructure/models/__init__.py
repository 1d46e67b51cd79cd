"""ORM models used by the application infrastructure."""

from .profile import ProfileModel
from .post import PostModel
from .post_like import PostLikeModel
from .read_state import NotificationReadStateModel

__all__ = [
    "ProfileModel",
    "PostModel",
    "PostLikeModel",
    "NotificationReadStateModel",
]
