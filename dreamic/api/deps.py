"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends, Path

from dreamic.config import settings
from dreamic.services.notification_permission import NotificationPermissionTracker
from dreamic.services.preferences import PreferencesStore, build_preferences_store

_preferences_store_singleton: PreferencesStore | None = None


def get_preferences_store() -> PreferencesStore:
    """Return the process-wide preferences store selected by settings."""

    global _preferences_store_singleton
    if _preferences_store_singleton is None:
        session_factory = None
        if settings.PREFERENCES_BACKEND == "sql":
            from dreamic.db.session import SessionLocal, init_db

            init_db()
            session_factory = SessionLocal
        _preferences_store_singleton = build_preferences_store(
            settings.PREFERENCES_BACKEND,
            namespace=settings.PREFERENCES_NAMESPACE,
            redis_url=str(settings.REDIS_URL) if settings.REDIS_URL else None,
            session_factory=session_factory,
        )
    return _preferences_store_singleton


def get_permission_tracker(
    installation_id: str = Path(
        ...,
        min_length=1,
        max_length=128,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Client installation identifier scoping all stored state",
    ),
    store: PreferencesStore = Depends(get_preferences_store),
) -> NotificationPermissionTracker:
    """Build a tracker scoped to one client installation."""

    return NotificationPermissionTracker(store.with_namespace(installation_id))
