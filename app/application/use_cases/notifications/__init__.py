"""Use cases that build and track a viewer's like notifications."""

from .aggregate_likes import (
    DEFAULT_SNIPPET_LENGTH,
    aggregate_likes,
    build_summary,
    make_snippet,
    resolve_actor_name,
)
from .feed_registry import NotificationFeedRegistry
from .refresh_coordinator import (
    DEFAULT_FETCH_LIMIT,
    LikeEventSource,
    NotificationFeedCoordinator,
    SnapshotListener,
    WatermarkStore,
)

__all__ = [
    "DEFAULT_FETCH_LIMIT",
    "DEFAULT_SNIPPET_LENGTH",
    "LikeEventSource",
    "NotificationFeedCoordinator",
    "NotificationFeedRegistry",
    "SnapshotListener",
    "WatermarkStore",
    "aggregate_likes",
    "build_summary",
    "make_snippet",
    "resolve_actor_name",
]
