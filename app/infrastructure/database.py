"""Database configuration and session management."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import get_settings


class Base(DeclarativeBase):
    """Base class for the feed tables queried as the like event source."""


class StateBase(DeclarativeBase):
    """Base class for tables kept in the local notification state store."""


settings = get_settings()

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared with worker threads, so same-thread checks
    are disabled for them.
    """

    if url.startswith("sqlite"):
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        return create_engine(url, connect_args=connect_args, **kwargs)
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

state_engine = build_engine(settings.state_database_url)
StateSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=state_engine)


def initialize_database(
    feed_engine: Engine | None = None, local_engine: Engine | None = None
) -> None:
    """Ensure all ORM models have corresponding database tables."""

    from app.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=feed_engine or engine, checkfirst=True)
    StateBase.metadata.create_all(bind=local_engine or state_engine, checkfirst=True)
    logger.debug("Notification tables ensured")


def dispose_engines() -> None:
    """Release pooled connections held by both engines."""

    engine.dispose()
    state_engine.dispose()

