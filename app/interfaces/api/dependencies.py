"""FastAPI dependency utilities."""

from fastapi import Depends, Header, HTTPException, Request, status

from app.application.use_cases.notifications import (
    NotificationFeedCoordinator,
    NotificationFeedRegistry,
)


def get_viewer_id(x_viewer_id: str | None = Header(default=None)) -> str:
    """Return the viewer identity forwarded by the authenticated client."""

    viewer_id = (x_viewer_id or "").strip()
    if not viewer_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing viewer identity",
        )
    return viewer_id


async def get_feed_registry(request: Request) -> NotificationFeedRegistry:
    """Return the registry created during application startup."""

    registry = getattr(request.app.state, "notification_feeds", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification service is not ready",
        )
    return registry


async def get_feed_coordinator(
    viewer_id: str = Depends(get_viewer_id),
    registry: NotificationFeedRegistry = Depends(get_feed_registry),
) -> NotificationFeedCoordinator:
    """Return the feed coordinator of the requesting viewer.

    Runs on the event loop so that the coordinator can start polling.
    """

    return registry.get(viewer_id)
