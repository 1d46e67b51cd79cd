"""Utility helpers to push feed snapshots to websocket subscribers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.domain.entities import FeedSnapshot, GroupActor, NotificationGroup
from app.utils import format_relative, in_app_timezone, now_utc

from .manager import NotificationConnectionManager, notification_manager


class FeedSnapshotPublisher:
    """Serialize feed snapshots and deliver them to a viewer's connections."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def publish(self, snapshot: FeedSnapshot) -> None:
        """Send ``snapshot`` to every websocket opened by its viewer."""

        if not self._manager.has_connections(snapshot.viewer_id):
            return
        message = {"type": "notifications", "data": serialize_feed_snapshot(snapshot)}
        await self._manager.send_to_viewer(snapshot.viewer_id, message)


def _iso_or_none(value: datetime | None) -> str | None:
    localized = in_app_timezone(value)
    return localized.isoformat() if localized else None


def _serialize_actor(entry: GroupActor) -> dict[str, Any]:
    return {
        "username": entry.actor.username,
        "display_name": entry.actor.display_name,
        "avatar_url": entry.actor.avatar_url,
        "name": entry.actor.name,
        "occurred_at": _iso_or_none(entry.occurred_at),
    }


def serialize_notification_group(
    group: NotificationGroup, *, now: datetime | None = None
) -> dict[str, Any]:
    """Return the display payload for ``group``."""

    return {
        "post_id": group.post_id,
        "summary": group.summary,
        "post_content_snippet": group.post_content_snippet,
        "lead_actor": _serialize_actor(group.actors[0]),
        "actors": [_serialize_actor(entry) for entry in group.actors],
        "actor_count": group.actor_count,
        "latest_event_at": _iso_or_none(group.latest_event_at),
        "relative_time": format_relative(group.latest_event_at, now=now),
    }


def serialize_feed_snapshot(
    snapshot: FeedSnapshot, *, now: datetime | None = None
) -> dict[str, Any]:
    """Return the websocket payload representation for ``snapshot``."""

    reference = now or now_utc()
    return {
        "viewer_id": snapshot.viewer_id,
        "state": snapshot.state.value,
        "unread_count": snapshot.unread_count,
        "error": snapshot.error,
        "last_read_at": _iso_or_none(snapshot.last_read_at),
        "fetched_at": _iso_or_none(snapshot.fetched_at),
        "hydrated": snapshot.hydrated,
        "groups": [
            serialize_notification_group(group, now=reference) for group in snapshot.groups
        ],
    }


feed_snapshot_publisher = FeedSnapshotPublisher(notification_manager)


async def publish_feed_snapshot(snapshot: FeedSnapshot) -> None:
    """Public helper that delegates to the shared publisher instance."""

    await feed_snapshot_publisher.publish(snapshot)


__all__ = [
    "FeedSnapshotPublisher",
    "feed_snapshot_publisher",
    "publish_feed_snapshot",
    "serialize_feed_snapshot",
    "serialize_notification_group",
]
