"""Value types describing notification permission history and outcomes."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from dreamic.utils.timestamps import from_epoch_millis, normalize_timestamp, to_epoch_millis


class NotificationPermissionStatus(str, Enum):
    """Unified notification permission state across platforms."""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    NOT_DETERMINED = "not_determined"
    # iOS only: delivered quietly to the Notification Center.
    PROVISIONAL = "provisional"

    @property
    def is_granted(self) -> bool:
        return self in (NotificationPermissionStatus.AUTHORIZED, NotificationPermissionStatus.PROVISIONAL)


class Platform(str, Enum):
    """Client platform the permission flow runs on."""

    ANDROID = "android"
    IOS = "ios"
    MACOS = "macos"
    WEB = "web"

    @property
    def can_reprompt_after_denial(self) -> bool:
        """Apple platforms never show the system dialog again after a denial."""

        return self not in (Platform.IOS, Platform.MACOS)


class NotificationInitResult(str, Enum):
    """Outcome of asking the platform for permission and initializing messaging."""

    SUCCESS = "success"
    PERMISSION_DENIED = "permission_denied"
    PERMISSION_PERMANENTLY_DENIED = "permission_permanently_denied"
    # The platform never showed the dialog; not counted as a denial.
    PERMISSION_REQUEST_BLOCKED = "permission_request_blocked"
    FCM_DISABLED_INSTANCE = "fcm_disabled_instance"
    FCM_DISABLED_CONFIG = "fcm_disabled_config"
    ALREADY_INITIALIZED = "already_initialized"
    ERROR = "error"


class NotificationFlowResult(str, Enum):
    """How a full notification permission flow completed."""

    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"
    DECLINED_VALUE_PROPOSITION = "declined_value_proposition"
    DENIED_PERMISSION = "denied_permission"
    DENIED_PERMANENTLY = "denied_permanently"
    SKIPPED_ASK_AGAIN = "skipped_ask_again"
    SKIPPED_GO_TO_SETTINGS = "skipped_go_to_settings"
    DECLINED_GO_TO_SETTINGS = "declined_go_to_settings"
    OPENED_SETTINGS = "opened_settings"
    SHOWN_WEB_INSTRUCTIONS = "shown_web_instructions"
    FCM_DISABLED = "fcm_disabled"
    ERROR = "error"


def _require(data: Mapping[str, Any], key: str, expected: type) -> Any:
    value = data[key]
    return _check_type(key, value, expected)


def _optional(data: Mapping[str, Any], key: str, expected: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    return _check_type(key, value, expected)


def _check_type(key: str, value: Any, expected: type) -> Any:
    # bool is a subclass of int; JSON true must not pass as a count.
    if expected is int and isinstance(value, bool):
        raise TypeError(f"{key} must be an integer, got a boolean")
    if not isinstance(value, expected):
        raise TypeError(f"{key} must be {expected.__name__}, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class NotificationDenialInfo:
    """History of explicit denials and request attempts for one installation.

    ``request_attempt_count`` counts every attempt, including ones the
    platform blocked without showing a dialog, so it is never lower than
    ``denial_count`` for records written by the tracker. Times are stored as
    aware UTC datetimes at millisecond precision, the resolution of the
    stored JSON.
    """

    last_denial_time: datetime
    denial_count: int
    is_permanent: bool
    request_attempt_count: int = 0
    last_request_attempt_time: datetime | None = None
    last_request_was_blocked: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_denial_time", normalize_timestamp(self.last_denial_time))
        if self.last_request_attempt_time is not None:
            object.__setattr__(
                self, "last_request_attempt_time", normalize_timestamp(self.last_request_attempt_time)
            )

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "NotificationDenialInfo":
        """Build an instance from its stored JSON mapping.

        Raises ``KeyError`` for missing required keys, ``TypeError`` for
        values of the wrong type and ``ValueError`` for timestamps outside
        the representable range.
        """

        if not isinstance(data, Mapping):
            raise TypeError("denial info must be a JSON object")
        last_attempt = _optional(data, "lastRequestAttemptTime", int, None)
        return cls(
            last_denial_time=from_epoch_millis(_require(data, "lastDenialTime", int)),
            denial_count=_require(data, "denialCount", int),
            is_permanent=_require(data, "isPermanent", bool),
            request_attempt_count=_optional(data, "requestAttemptCount", int, 0),
            last_request_attempt_time=from_epoch_millis(last_attempt) if last_attempt is not None else None,
            last_request_was_blocked=_optional(data, "lastRequestWasBlocked", bool, False),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "lastDenialTime": to_epoch_millis(self.last_denial_time),
            "denialCount": self.denial_count,
            "isPermanent": self.is_permanent,
            "requestAttemptCount": self.request_attempt_count,
            "lastRequestAttemptTime": (
                to_epoch_millis(self.last_request_attempt_time)
                if self.last_request_attempt_time is not None
                else None
            ),
            "lastRequestWasBlocked": self.last_request_was_blocked,
        }

    def copy_with(self, **changes: Any) -> "NotificationDenialInfo":
        return replace(self, **changes)


@dataclass(frozen=True)
class GoToSettingsPromptInfo:
    """History of in-app prompts sending the user to system settings."""

    last_prompt_time: datetime
    prompt_count: int
    # True when the user chose to open settings, False when they dismissed.
    last_action_was_open_settings: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_prompt_time", normalize_timestamp(self.last_prompt_time))

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "GoToSettingsPromptInfo":
        if not isinstance(data, Mapping):
            raise TypeError("settings prompt info must be a JSON object")
        return cls(
            last_prompt_time=from_epoch_millis(_require(data, "lastPromptTime", int)),
            prompt_count=_require(data, "promptCount", int),
            last_action_was_open_settings=_require(data, "lastActionWasOpenSettings", bool),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "lastPromptTime": to_epoch_millis(self.last_prompt_time),
            "promptCount": self.prompt_count,
            "lastActionWasOpenSettings": self.last_action_was_open_settings,
        }

    def copy_with(self, **changes: Any) -> "GoToSettingsPromptInfo":
        return replace(self, **changes)


__all__ = [
    "GoToSettingsPromptInfo",
    "NotificationDenialInfo",
    "NotificationFlowResult",
    "NotificationInitResult",
    "NotificationPermissionStatus",
    "Platform",
]
