"""FastAPI application exposing the like-notification feed."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.application.use_cases.notifications import NotificationFeedRegistry
from app.config import Settings, get_settings
from app.infrastructure.database import dispose_engines, initialize_database
from app.infrastructure.notifications import (
    ReadWatermarkStore,
    SqlLikeEventSource,
    notification_manager,
    publish_feed_snapshot,
)
from app.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


def create_feed_registry(settings: Settings) -> NotificationFeedRegistry:
    """Wire the SQL event source and watermark store into a registry."""

    timeout = settings.notification_fetch_timeout_seconds
    return NotificationFeedRegistry(
        SqlLikeEventSource(default_timeout=timeout),
        ReadWatermarkStore(),
        limit=settings.notification_fetch_limit,
        timeout=timeout,
        snippet_length=settings.notification_snippet_length,
        poll_interval=settings.notification_poll_interval_seconds or None,
        idle_ttl=settings.notification_idle_ttl_seconds or None,
        listeners=[publish_feed_snapshot],
        is_connected=notification_manager.has_connections,
    )


def create_app(feed_registry: NotificationFeedRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``feed_registry`` is given it is used as-is and no database is
    initialized at startup.
    """

    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.log_level)
        registry = feed_registry
        owns_databases = registry is None
        if owns_databases:
            initialize_database()
            registry = create_feed_registry(settings)
        app.state.notification_feeds = registry
        logger.info("Notification feed service started")
        try:
            yield
        finally:
            registry.close()
            if owns_databases:
                dispose_engines()

    app = FastAPI(title="Like digest", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
