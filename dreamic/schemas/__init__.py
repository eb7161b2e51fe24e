"""Pydantic schemas package."""

from dreamic.schemas.notification import (
    AutoClearResponse,
    DenialInfoRead,
    DenialRequest,
    PermissionDecision,
    PermissionStateRead,
    PermissionStatusUpdate,
    ReminderRead,
    SettingsPromptInfoRead,
    SettingsPromptRequest,
)

__all__ = [
    "AutoClearResponse",
    "DenialInfoRead",
    "DenialRequest",
    "PermissionDecision",
    "PermissionStateRead",
    "PermissionStatusUpdate",
    "ReminderRead",
    "SettingsPromptInfoRead",
    "SettingsPromptRequest",
]
