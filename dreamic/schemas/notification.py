"""Pydantic models for notification permission tracking endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dreamic.core.notifications.types import NotificationPermissionStatus, Platform


class DenialRequest(BaseModel):
    """Payload recording an explicit denial."""

    is_permanent: bool = Field(False, description="Platform reported the dialog will not be shown again")


class SettingsPromptRequest(BaseModel):
    """Payload recording the answer to a go-to-settings prompt."""

    opened_settings: bool


class PermissionStatusUpdate(BaseModel):
    """Current permission status observed by the client."""

    status: NotificationPermissionStatus


class DenialInfoRead(BaseModel):
    """Stored denial history."""

    last_denial_time: datetime
    denial_count: int
    is_permanent: bool
    request_attempt_count: int
    last_request_attempt_time: datetime | None
    last_request_was_blocked: bool

    model_config = ConfigDict(from_attributes=True)


class SettingsPromptInfoRead(BaseModel):
    """Stored go-to-settings prompt history."""

    last_prompt_time: datetime
    prompt_count: int
    last_action_was_open_settings: bool

    model_config = ConfigDict(from_attributes=True)


class PermissionStateRead(BaseModel):
    """Everything the tracker knows about one installation."""

    denial_info: DenialInfoRead | None
    settings_prompt_info: SettingsPromptInfoRead | None
    has_requested_before: bool
    denial_count: int
    request_count: int
    last_reminder_date: datetime | None


class ReminderRead(BaseModel):
    should_show: bool
    interval_days: int
    last_reminder_date: datetime | None


class AutoClearResponse(BaseModel):
    status: NotificationPermissionStatus
    cleared: bool


class PermissionDecision(BaseModel):
    """Advice for the client's next step in the permission flow."""

    status: NotificationPermissionStatus
    platform: Platform
    should_request: bool
    can_prompt: bool
    should_show_settings_prompt: bool
    should_show_rationale: bool
    optimal_context: str
