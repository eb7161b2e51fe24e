"""Policy for when to re-ask for notification permission.

``NotificationFlowConfig`` is plain configuration; the functions below are
pure and take the current time explicitly so callers and tests control it.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

from dreamic.core.notifications.types import (
    GoToSettingsPromptInfo,
    NotificationDenialInfo,
    NotificationFlowResult,
    NotificationInitResult,
)

if TYPE_CHECKING:  # pragma: no cover
    from dreamic.config import Settings


@dataclass(frozen=True)
class NotificationFlowStrings:
    """Dialog copy for the permission flow. Override for localization."""

    value_proposition_title: str = "Enable Notifications"
    value_proposition_message: str = "Stay updated with important alerts and messages."
    value_proposition_accept_button: str = "Enable"
    value_proposition_decline_button: str = "Not Now"

    go_to_settings_title: str = "Notifications Disabled"
    go_to_settings_message: str = (
        "To receive notifications, please enable them in your device settings."
    )
    go_to_settings_button: str = "Open Settings"
    go_to_settings_cancel_button: str = "Cancel"

    ask_again_title: str = "Enable Notifications?"
    ask_again_message: str = (
        "You previously declined notifications. Would you like to enable them now?"
    )
    ask_again_accept_button: str = "Yes, Enable"
    ask_again_decline_button: str = "No Thanks"

    web_settings_instructions_title: str = "Enable Notifications"
    web_settings_instructions_message: str = (
        "To enable notifications:\n\n"
        "1. Click the lock/info icon in your browser's address bar\n"
        '2. Find "Notifications" in the permissions list\n'
        '3. Change it from "Block" to "Allow"\n'
        "4. Refresh this page"
    )
    web_settings_instructions_button: str = "Got It"

    def copy_with(self, **changes: Any) -> "NotificationFlowStrings":
        return replace(self, **changes)


@dataclass(frozen=True)
class NotificationFlowConfig:
    """Timing and limits for re-asking and for the go-to-settings prompt.

    With ``ask_again_after`` of 7 days and a multiplier of 1.5 the waits are
    7, 10.5 and 15.75 days after the first, second and third denial. A
    multiplier of 1.0 keeps the interval constant.
    """

    ask_again_after: timedelta = timedelta(days=7)
    ask_again_multiplier: float = 3.0
    # 0 = never ask again after a denial.
    max_ask_count: int = 3

    show_go_to_settings_prompt: bool = True
    go_to_settings_ask_again_after: timedelta = timedelta(days=30)
    # None = unlimited (only the interval applies), 0 = never show.
    go_to_settings_max_ask_count: Optional[int] = None

    strings: NotificationFlowStrings = field(default_factory=NotificationFlowStrings)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        show_go_to_settings_prompt: bool = True,
        go_to_settings_ask_again_after: timedelta = timedelta(days=30),
        go_to_settings_max_ask_count: Optional[int] = None,
        strings: Optional[NotificationFlowStrings] = None,
    ) -> "NotificationFlowConfig":
        """Build a config whose re-ask policy comes from application settings."""

        return cls(
            ask_again_after=timedelta(days=settings.NOTIFICATION_ASK_AGAIN_DAYS),
            ask_again_multiplier=settings.NOTIFICATION_ASK_AGAIN_MULTIPLIER,
            max_ask_count=settings.NOTIFICATION_MAX_ASK_COUNT,
            show_go_to_settings_prompt=show_go_to_settings_prompt,
            go_to_settings_ask_again_after=go_to_settings_ask_again_after,
            go_to_settings_max_ask_count=go_to_settings_max_ask_count,
            strings=strings or NotificationFlowStrings(),
        )

    def copy_with(self, **changes: Any) -> "NotificationFlowConfig":
        return replace(self, **changes)


def ask_again_duration(config: NotificationFlowConfig, denial_count: int) -> timedelta:
    """Return ``ask_again_after * multiplier ** (denial_count - 1)``."""

    if denial_count <= 1:
        return config.ask_again_after
    factor = config.ask_again_multiplier ** (denial_count - 1)
    millis = round(config.ask_again_after / timedelta(milliseconds=1) * factor)
    return timedelta(milliseconds=millis)


def should_ask_again(
    info: Optional[NotificationDenialInfo],
    config: NotificationFlowConfig,
    now: datetime,
) -> bool:
    """Return True when a retriable denial may be followed by another ask.

    The wait since the last denial grows with each denial, see
    :func:`ask_again_duration`.
    """

    if info is None:
        return True
    if info.is_permanent:
        return False
    if info.denial_count >= config.max_ask_count:
        return False
    return now - info.last_denial_time >= ask_again_duration(config, info.denial_count)


def should_show_go_to_settings_prompt(
    info: Optional[GoToSettingsPromptInfo],
    config: NotificationFlowConfig,
    now: datetime,
) -> bool:
    """Return True when the go-to-settings prompt is allowed right now."""

    if not config.show_go_to_settings_prompt:
        return False
    if info is None:
        return True
    if (
        config.go_to_settings_max_ask_count is not None
        and info.prompt_count >= config.go_to_settings_max_ask_count
    ):
        return False
    return now - info.last_prompt_time >= config.go_to_settings_ask_again_after


_INIT_TO_FLOW_RESULT = {
    NotificationInitResult.SUCCESS: NotificationFlowResult.GRANTED,
    NotificationInitResult.ALREADY_INITIALIZED: NotificationFlowResult.ALREADY_GRANTED,
    NotificationInitResult.PERMISSION_DENIED: NotificationFlowResult.DENIED_PERMISSION,
    NotificationInitResult.PERMISSION_PERMANENTLY_DENIED: NotificationFlowResult.DENIED_PERMANENTLY,
    NotificationInitResult.PERMISSION_REQUEST_BLOCKED: NotificationFlowResult.DENIED_PERMISSION,
    NotificationInitResult.FCM_DISABLED_CONFIG: NotificationFlowResult.FCM_DISABLED,
    NotificationInitResult.FCM_DISABLED_INSTANCE: NotificationFlowResult.FCM_DISABLED,
    NotificationInitResult.ERROR: NotificationFlowResult.ERROR,
}


def map_init_result_to_flow_result(result: NotificationInitResult) -> NotificationFlowResult:
    return _INIT_TO_FLOW_RESULT[result]


__all__ = [
    "NotificationFlowConfig",
    "NotificationFlowStrings",
    "ask_again_duration",
    "map_init_result_to_flow_result",
    "should_ask_again",
    "should_show_go_to_settings_prompt",
]
