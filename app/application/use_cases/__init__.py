"""Aggregate application use cases."""

from .notifications import (
    NotificationFeedCoordinator,
    NotificationFeedRegistry,
    aggregate_likes,
)

__all__ = [
    "NotificationFeedCoordinator",
    "NotificationFeedRegistry",
    "aggregate_likes",
]
