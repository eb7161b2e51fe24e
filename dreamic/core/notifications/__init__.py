"""Notification permission value types and flow policy."""

from dreamic.core.notifications.flow import (
    NotificationFlowConfig,
    NotificationFlowStrings,
    ask_again_duration,
    map_init_result_to_flow_result,
    should_ask_again,
    should_show_go_to_settings_prompt,
)
from dreamic.core.notifications.types import (
    GoToSettingsPromptInfo,
    NotificationDenialInfo,
    NotificationFlowResult,
    NotificationInitResult,
    NotificationPermissionStatus,
    Platform,
)

__all__ = [
    "GoToSettingsPromptInfo",
    "NotificationDenialInfo",
    "NotificationFlowConfig",
    "NotificationFlowResult",
    "NotificationFlowStrings",
    "NotificationInitResult",
    "NotificationPermissionStatus",
    "Platform",
    "ask_again_duration",
    "map_init_result_to_flow_result",
    "should_ask_again",
    "should_show_go_to_settings_prompt",
]
