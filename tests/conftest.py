"""Pytest fixtures for notification permission tests."""

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

os.environ.setdefault("PREFERENCES_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dreamic.api.deps import get_preferences_store
from dreamic.db.base import Base
from dreamic.db.models import PreferenceEntry
from dreamic.main import create_app
from dreamic.services.notification_permission import NotificationPermissionTracker
from dreamic.services.preferences import InMemoryPreferencesStore


class FrozenClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture()
def store() -> InMemoryPreferencesStore:
    return InMemoryPreferencesStore()


@pytest.fixture()
def tracker(store: InMemoryPreferencesStore, clock: FrozenClock) -> NotificationPermissionTracker:
    return NotificationPermissionTracker(store, clock=clock)


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[PreferenceEntry.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[PreferenceEntry.__table__])


@pytest.fixture()
def session_factory(db_engine) -> Generator[sessionmaker, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    try:
        yield TestingSessionLocal
    finally:
        db: Session = TestingSessionLocal()
        db.execute(delete(PreferenceEntry))
        db.commit()
        db.close()


@pytest.fixture()
def client(store: InMemoryPreferencesStore) -> Generator[TestClient, None, None]:
    app = create_app()
    app.dependency_overrides[get_preferences_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
