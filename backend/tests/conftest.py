import os

# Settings are read at import time by several modules; give them test values first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("BRAVE_SEARCH_API_KEY", "test-brave-key")
os.environ.setdefault("ELEVENLABS_API_KEY", "test-eleven-key")
os.environ.setdefault("ELEVENLABS_SARAH_VOICE_ID", "voice-sarah")
os.environ.setdefault("ELEVENLABS_JAMES_VOICE_ID", "voice-james")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://cdn.example.com")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from civic_briefs.core.db import Base
from civic_briefs.models.bill import Bill  # noqa: F401
from civic_briefs.models.brief import Brief  # noqa: F401
from civic_briefs.models.user import User  # noqa: F401

from tests.fixtures.pipeline_fakes import InMemoryJobStore, RecordingQueue


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def queue():
    return RecordingQueue()
