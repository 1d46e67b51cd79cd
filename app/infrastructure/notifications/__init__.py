"""Notification infrastructure: event source, read state and realtime push."""

from .event_source import SqlLikeEventSource
from .manager import NotificationConnectionManager, notification_manager
from .publisher import (
    FeedSnapshotPublisher,
    feed_snapshot_publisher,
    publish_feed_snapshot,
    serialize_feed_snapshot,
    serialize_notification_group,
)
from .watermarks import ReadWatermarkStore

__all__ = [
    "SqlLikeEventSource",
    "ReadWatermarkStore",
    "NotificationConnectionManager",
    "notification_manager",
    "FeedSnapshotPublisher",
    "feed_snapshot_publisher",
    "publish_feed_snapshot",
    "serialize_feed_snapshot",
    "serialize_notification_group",
]
