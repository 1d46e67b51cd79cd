"""Endpoints and websocket handler for like notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, WebSocket, WebSocketDisconnect, status

from app.application.use_cases.notifications import NotificationFeedCoordinator
from app.domain.entities import FeedSnapshot
from app.infrastructure.notifications import notification_manager, serialize_feed_snapshot
from app.interfaces.api.dependencies import get_feed_coordinator
from app.interfaces.api.schemas import (
    NotificationActivateRequest,
    NotificationFeedRead,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _snapshot_to_schema(snapshot: FeedSnapshot) -> NotificationFeedRead:
    return NotificationFeedRead.model_validate(serialize_feed_snapshot(snapshot))


async def _refresh_in_background(coordinator: NotificationFeedCoordinator) -> None:
    try:
        await coordinator.on_external_invalidation()
    except Exception as exc:  # pragma: no cover - background refresh guard
        logger.exception(
            "Error refreshing notifications for viewer %s: %s", coordinator.viewer_id, exc
        )


@router.get("", response_model=NotificationFeedRead)
async def read_notifications(
    coordinator: NotificationFeedCoordinator = Depends(get_feed_coordinator),
) -> NotificationFeedRead:
    """Return the last computed notifications without fetching."""

    return _snapshot_to_schema(coordinator.snapshot())


@router.get("/unread-count", response_model=UnreadCountRead)
async def read_unread_count(
    coordinator: NotificationFeedCoordinator = Depends(get_feed_coordinator),
) -> UnreadCountRead:
    """Return the unread badge counter."""

    return UnreadCountRead(unread_count=coordinator.unread_count)


@router.post("/activate", response_model=NotificationFeedRead)
async def activate_notifications(
    payload: NotificationActivateRequest | None = None,
    coordinator: NotificationFeedCoordinator = Depends(get_feed_coordinator),
) -> NotificationFeedRead:
    """The viewer opened the notifications view: fetch and mark as read."""

    read_at = payload.read_at if payload is not None else None
    snapshot = await coordinator.activate(read_time=read_at)
    return _snapshot_to_schema(snapshot)


@router.post("/refresh", response_model=NotificationFeedRead)
async def refresh_notifications(
    coordinator: NotificationFeedCoordinator = Depends(get_feed_coordinator),
) -> NotificationFeedRead:
    """Pull-to-refresh without marking notifications as read."""

    snapshot = await coordinator.manual_refresh()
    return _snapshot_to_schema(snapshot)


@router.post("/invalidate", status_code=status.HTTP_202_ACCEPTED)
async def invalidate_notifications(
    background_tasks: BackgroundTasks,
    coordinator: NotificationFeedCoordinator = Depends(get_feed_coordinator),
) -> dict[str, str]:
    """Hook for realtime channels reporting that new likes arrived."""

    background_tasks.add_task(_refresh_in_background, coordinator)
    return {"status": "scheduled"}


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams feed snapshots to a viewer."""

    viewer_id = (
        websocket.query_params.get("viewer_id") or websocket.headers.get("x-viewer-id") or ""
    ).strip()
    registry = getattr(websocket.app.state, "notification_feeds", None)
    if not viewer_id or registry is None:
        await websocket.close(code=1008)
        return

    coordinator = registry.get(viewer_id)
    await notification_manager.connect(viewer_id, websocket)
    try:
        await websocket.send_json(
            {"type": "init", "data": serialize_feed_snapshot(coordinator.snapshot())}
        )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "activate":
                await registry.get(viewer_id).activate()
            elif message_type == "refresh":
                await registry.get(viewer_id).manual_refresh()
    except WebSocketDisconnect:
        pass
    finally:
        if notification_manager.disconnect(viewer_id, websocket):
            # Nobody is listening any more; polling resumes on the next request.
            registry.suspend(viewer_id)
