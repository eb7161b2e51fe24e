"""Notification permission state tracking backed by a preferences store."""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger

from dreamic.core.notifications.flow import (
    NotificationFlowConfig,
    ask_again_duration,
    should_show_go_to_settings_prompt,
)
from dreamic.core.notifications.types import (
    GoToSettingsPromptInfo,
    NotificationDenialInfo,
    NotificationPermissionStatus,
    Platform,
)
from dreamic.services.preferences import PreferencesStore
from dreamic.utils.exceptions import PreferenceTypeError
from dreamic.utils.timestamps import from_epoch_millis, to_epoch_millis, truncate_to_millis, utcnow

KEY_DENIAL_INFO = "dreamic_notification_denial_info"
KEY_SETTINGS_PROMPT_INFO = "dreamic_notification_settings_prompt_info"
KEY_HAS_REQUESTED = "dreamic_notification_has_requested"
KEY_LAST_REMINDER_DATE = "dreamic_notification_last_reminder_date"
KEY_MIGRATION_COMPLETE = "dreamic_notification_keys_migrated"

# Flat keys written by earlier releases; read once during migration.
LEGACY_KEY_REQUEST_COUNT = "notification_permission_request_count"
LEGACY_KEY_DENIAL_COUNT = "notification_permission_denial_count"
LEGACY_KEY_LAST_REQUEST = "notification_last_permission_request"
LEGACY_KEY_LAST_REMINDER = "notification_last_reminder_date"
LEGACY_KEYS = (
    LEGACY_KEY_REQUEST_COUNT,
    LEGACY_KEY_DENIAL_COUNT,
    LEGACY_KEY_LAST_REQUEST,
    LEGACY_KEY_LAST_REMINDER,
)

DEFAULT_REMINDER_INTERVAL_DAYS = 30

# Without a flow config: minimum gap between attempts and attempt ceiling.
_LEGACY_MIN_DAYS_BETWEEN_REQUESTS = 1
_LEGACY_MAX_REQUEST_ATTEMPTS = 5


class NotificationPermissionTracker:
    """Single source of truth for notification permission prompt history.

    Records denials, platform-blocked request attempts and go-to-settings
    prompts, and answers whether the app should prompt again. The current
    permission status is always supplied by the caller; the tracker never
    queries the platform itself.

    Every public operation first runs :meth:`ensure_migrated`. Writes are
    read-modify-write against single keys, so concurrent callers on the same
    installation may under-count by one.
    """

    def __init__(
        self,
        store: PreferencesStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or utcnow
        self._migration_complete = False

    def now(self) -> datetime:
        """Current time at the millisecond precision records are stored with."""
        return truncate_to_millis(self._clock())

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    async def ensure_migrated(self) -> None:
        """Move legacy flat keys into the structured records exactly once.

        The completion flag is written last, so a run interrupted part way
        is simply repeated. Records already written by an interrupted run
        are kept rather than rebuilt from partially removed legacy keys.
        """

        if self._migration_complete:
            return
        if await self.store.get_bool(KEY_MIGRATION_COMPLETE):
            logger.debug("Notification permission keys already migrated")
            self._migration_complete = True
            return

        request_count = await self.store.get_int(LEGACY_KEY_REQUEST_COUNT)
        denial_count = await self.store.get_int(LEGACY_KEY_DENIAL_COUNT)
        last_request = await self.store.get_int(LEGACY_KEY_LAST_REQUEST)
        last_reminder = await self.store.get_int(LEGACY_KEY_LAST_REMINDER)

        denials = denial_count or 0
        attempts = request_count if request_count is not None else denials
        if (denials > 0 or attempts > 0) and not await self.store.contains(KEY_DENIAL_INFO):
            info = NotificationDenialInfo(
                last_denial_time=self._legacy_time(last_request),
                denial_count=denials,
                # Legacy data never tracked permanence; refreshed on the next denial.
                is_permanent=False,
                request_attempt_count=max(attempts, denials),
            )
            await self._save_denial_info(info)

        if request_count:
            await self.store.set_bool(KEY_HAS_REQUESTED, True)

        if last_reminder is not None and not await self.store.contains(KEY_LAST_REMINDER_DATE):
            await self.store.set_int(KEY_LAST_REMINDER_DATE, last_reminder)

        for legacy_key in LEGACY_KEYS:
            await self.store.remove(legacy_key)

        await self.store.set_bool(KEY_MIGRATION_COMPLETE, True)
        self._migration_complete = True
        logger.info(
            "Migrated notification permission keys",
            legacy_request_count=request_count,
            legacy_denial_count=denial_count,
        )

    def _legacy_time(self, millis: Optional[int]) -> datetime:
        if millis is None:
            return self.now()
        try:
            return from_epoch_millis(millis)
        except ValueError as exc:
            logger.warning("Ignoring out-of-range legacy request time", error=str(exc))
            return self.now()

    # ------------------------------------------------------------------
    # Stored records
    # ------------------------------------------------------------------

    async def _load_json(self, key: str) -> Optional[dict]:
        try:
            raw = await self.store.get_string(key)
        except PreferenceTypeError as exc:
            logger.warning("Ignoring notification tracking record of the wrong type", key=key, error=exc.message)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt notification tracking record", key=key, error=str(exc))
            return None

    async def _save_denial_info(self, info: NotificationDenialInfo) -> None:
        await self.store.set_string(KEY_DENIAL_INFO, json.dumps(info.to_json()))

    async def get_notification_denial_info(self) -> Optional[NotificationDenialInfo]:
        """Return the stored denial history, or ``None`` when absent or corrupt."""

        await self.ensure_migrated()
        data = await self._load_json(KEY_DENIAL_INFO)
        if data is None:
            return None
        try:
            return NotificationDenialInfo.from_json(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed denial info", error=str(exc))
            return None

    async def clear_notification_denial_info(self) -> None:
        await self.ensure_migrated()
        await self.store.remove(KEY_DENIAL_INFO)
        logger.debug("Cleared notification denial info")

    async def get_go_to_settings_prompt_info(self) -> Optional[GoToSettingsPromptInfo]:
        """Return the stored go-to-settings history, or ``None`` when absent or corrupt."""

        await self.ensure_migrated()
        data = await self._load_json(KEY_SETTINGS_PROMPT_INFO)
        if data is None:
            return None
        try:
            return GoToSettingsPromptInfo.from_json(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed go-to-settings prompt info", error=str(exc))
            return None

    async def clear_go_to_settings_prompt_info(self) -> None:
        await self.ensure_migrated()
        await self.store.remove(KEY_SETTINGS_PROMPT_INFO)
        logger.debug("Cleared go-to-settings prompt info")

    # ------------------------------------------------------------------
    # Recording outcomes
    # ------------------------------------------------------------------

    async def record_denial(self, *, is_permanent: bool) -> NotificationDenialInfo:
        """Record that the user saw the system dialog and declined.

        ``is_permanent`` is True when the platform reports that the dialog will
        not be shown again (iOS after any denial, Android "don't ask again").
        """

        existing = await self.get_notification_denial_info()
        now = self.now()
        info = NotificationDenialInfo(
            last_denial_time=now,
            denial_count=(existing.denial_count if existing else 0) + 1,
            is_permanent=is_permanent,
            request_attempt_count=(existing.request_attempt_count if existing else 0) + 1,
            last_request_attempt_time=now,
            last_request_was_blocked=False,
        )
        await self._save_denial_info(info)
        await self.store.set_bool(KEY_HAS_REQUESTED, True)
        logger.info(
            "Recorded permission denial",
            denial_count=info.denial_count,
            request_attempt_count=info.request_attempt_count,
            is_permanent=is_permanent,
        )
        return info

    async def record_blocked_request(self) -> NotificationDenialInfo:
        """Record an attempt the platform suppressed without showing a dialog.

        Only the attempt counter moves; the denial count, last denial time and
        permanence are kept so throttled prompts never count as denials.
        """

        existing = await self.get_notification_denial_info()
        now = self.now()
        if existing is None:
            info = NotificationDenialInfo(
                last_denial_time=now,
                denial_count=0,
                is_permanent=False,
                request_attempt_count=1,
                last_request_attempt_time=now,
                last_request_was_blocked=True,
            )
        else:
            info = existing.copy_with(
                request_attempt_count=existing.request_attempt_count + 1,
                last_request_attempt_time=now,
                last_request_was_blocked=True,
            )
        await self._save_denial_info(info)
        await self.store.set_bool(KEY_HAS_REQUESTED, True)
        logger.info(
            "Recorded blocked permission request",
            denial_count=info.denial_count,
            request_attempt_count=info.request_attempt_count,
        )
        return info

    async def record_go_to_settings_prompt(self, *, opened_settings: bool) -> GoToSettingsPromptInfo:
        """Record that the go-to-settings prompt was shown and how the user answered."""

        existing = await self.get_go_to_settings_prompt_info()
        info = GoToSettingsPromptInfo(
            last_prompt_time=self.now(),
            prompt_count=(existing.prompt_count if existing else 0) + 1,
            last_action_was_open_settings=opened_settings,
        )
        await self.store.set_string(KEY_SETTINGS_PROMPT_INFO, json.dumps(info.to_json()))
        logger.info(
            "Recorded go-to-settings prompt",
            prompt_count=info.prompt_count,
            opened_settings=opened_settings,
        )
        return info

    async def track_permission_request(self) -> None:
        """Mark that a request was made without knowing its outcome.

        Prefer :meth:`record_denial` or :meth:`record_blocked_request`.
        """

        await self.ensure_migrated()
        await self.store.set_bool(KEY_HAS_REQUESTED, True)
        existing = await self.get_notification_denial_info()
        if existing is not None:
            await self._save_denial_info(
                existing.copy_with(
                    request_attempt_count=existing.request_attempt_count + 1,
                    last_request_attempt_time=self.now(),
                )
            )

    async def auto_clear_if_granted(self, status: NotificationPermissionStatus) -> bool:
        """Drop denial and prompt history once permission is granted.

        The has-requested flag and last reminder date are kept. Returns True
        when history existed and was cleared.
        """

        if not status.is_granted:
            return False
        denial_info = await self.get_notification_denial_info()
        settings_info = await self.get_go_to_settings_prompt_info()
        if denial_info is None and settings_info is None:
            return False
        await self.clear_notification_denial_info()
        await self.clear_go_to_settings_prompt_info()
        logger.info("Permission granted, cleared notification tracking history", status=status.value)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def has_requested_permission_before(self) -> bool:
        await self.ensure_migrated()
        return bool(await self.store.get_bool(KEY_HAS_REQUESTED))

    async def get_permission_denial_count(self) -> int:
        info = await self.get_notification_denial_info()
        return info.denial_count if info else 0

    async def get_permission_request_count(self) -> int:
        info = await self.get_notification_denial_info()
        return info.request_attempt_count if info else 0

    async def get_last_reminder_date(self) -> Optional[datetime]:
        await self.ensure_migrated()
        millis = await self.store.get_int(KEY_LAST_REMINDER_DATE)
        if millis is None:
            return None
        try:
            return from_epoch_millis(millis)
        except ValueError as exc:
            logger.warning("Ignoring out-of-range last reminder date", error=str(exc))
            return None

    async def should_show_periodic_reminder(
        self, interval_days: int = DEFAULT_REMINDER_INTERVAL_DAYS
    ) -> bool:
        """Return True if no reminder was shown yet or ``interval_days`` whole days passed."""

        last_reminder = await self.get_last_reminder_date()
        if last_reminder is None:
            return True
        days_since = (self.now() - last_reminder).days
        return days_since >= interval_days

    async def update_last_reminder_date(self) -> None:
        await self.ensure_migrated()
        await self.store.set_int(KEY_LAST_REMINDER_DATE, to_epoch_millis(self.now()))

    async def should_show_permission_rationale(self, platform: Platform) -> bool:
        """Return True when an explanation should precede the next request.

        Apple platforms expose no rationale signal, so this is always False there.
        """

        if not platform.can_reprompt_after_denial:
            return False
        info = await self.get_notification_denial_info()
        return info is not None and info.denial_count > 0

    async def can_prompt_for_permission(
        self, status: NotificationPermissionStatus, platform: Platform
    ) -> bool:
        """Return True when the system permission dialog can still be shown."""

        if status.is_granted:
            return False
        if status is NotificationPermissionStatus.NOT_DETERMINED:
            return True
        if not platform.can_reprompt_after_denial:
            return False
        info = await self.get_notification_denial_info()
        if info is None:
            return True
        # Android 13+ stops showing the dialog after the second denial.
        return not info.is_permanent and info.denial_count < 2

    async def should_show_settings_prompt(
        self,
        status: NotificationPermissionStatus,
        platform: Platform,
        config: Optional[NotificationFlowConfig] = None,
    ) -> bool:
        """Return True when the user should be sent to system settings."""

        if status is not NotificationPermissionStatus.DENIED:
            return False
        if platform.can_reprompt_after_denial:
            info = await self.get_notification_denial_info()
            if info is None or not (info.denial_count >= 2 or info.is_permanent):
                return False
        if config is None:
            return True
        settings_info = await self.get_go_to_settings_prompt_info()
        return should_show_go_to_settings_prompt(settings_info, config, self.now())

    async def should_request_permissions(
        self,
        status: NotificationPermissionStatus,
        platform: Platform,
        config: Optional[NotificationFlowConfig] = None,
    ) -> bool:
        """Return True when the app should request permission now.

        With a flow config, the wait after each denial grows by the config's
        multiplier and requests stop at ``max_ask_count`` denials. Without
        one, requests are spaced at least a day apart and stop after five
        attempts.
        """

        if status.is_granted:
            return False
        if status is NotificationPermissionStatus.DENIED and not await self.can_prompt_for_permission(
            status, platform
        ):
            return False

        info = await self.get_notification_denial_info()
        now = self.now()

        if config is not None and info is not None:
            if info.denial_count >= config.max_ask_count:
                return False
            required_delay = ask_again_duration(config, info.denial_count)
            return now - info.last_denial_time >= required_delay

        if info is not None and info.last_request_attempt_time is not None:
            if now - info.last_request_attempt_time < timedelta(days=_LEGACY_MIN_DAYS_BETWEEN_REQUESTS):
                return False
        request_count = info.request_attempt_count if info else 0
        return request_count < _LEGACY_MAX_REQUEST_ATTEMPTS

    async def get_optimal_context(self) -> str:
        """Suggest when in the user journey the next request should happen."""

        info = await self.get_notification_denial_info()
        request_count = info.request_attempt_count if info else 0
        denial_count = info.denial_count if info else 0

        if request_count == 0:
            return "Show after first value moment (user has experienced app benefits)"
        if denial_count > 0:
            return "Show when user explicitly enables a feature that needs notifications"
        if request_count >= 2:
            return "Show with strong rationale explaining specific benefits user will miss"
        return "Show in context of a feature the user is actively using"


__all__ = [
    "KEY_DENIAL_INFO",
    "KEY_HAS_REQUESTED",
    "KEY_LAST_REMINDER_DATE",
    "KEY_MIGRATION_COMPLETE",
    "KEY_SETTINGS_PROMPT_INFO",
    "LEGACY_KEYS",
    "NotificationPermissionTracker",
]
