import pathlib
import sys

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.infrastructure import models  # noqa: E402,F401  # register tables
from app.infrastructure.database import Base, StateBase, build_engine  # noqa: E402
from app.infrastructure.notifications import ReadWatermarkStore  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def feed_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def feed_sessions(feed_engine):
    return sessionmaker(bind=feed_engine, autoflush=False)


@pytest.fixture
def state_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    StateBase.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def state_sessions(state_engine):
    return sessionmaker(bind=state_engine, autoflush=False)


@pytest.fixture
def watermark_store(state_sessions):
    return ReadWatermarkStore(state_sessions)
