"""Service layer package."""

from dreamic.services.notification_permission import NotificationPermissionTracker
from dreamic.services.permission_flow import NotificationPermissionFlow
from dreamic.services.preferences import (
    InMemoryPreferencesStore,
    PreferencesStore,
    RedisPreferencesStore,
    SqlPreferencesStore,
    build_preferences_store,
)

__all__ = [
    "InMemoryPreferencesStore",
    "NotificationPermissionFlow",
    "NotificationPermissionTracker",
    "PreferencesStore",
    "RedisPreferencesStore",
    "SqlPreferencesStore",
    "build_preferences_store",
]
