"""Orchestration of the notification permission prompt flow."""
from __future__ import annotations

from typing import Optional, Protocol

from loguru import logger

from dreamic.core.notifications.flow import (
    NotificationFlowConfig,
    map_init_result_to_flow_result,
    should_ask_again,
    should_show_go_to_settings_prompt,
)
from dreamic.core.notifications.types import (
    NotificationDenialInfo,
    NotificationFlowResult,
    NotificationInitResult,
    NotificationPermissionStatus,
    Platform,
)
from dreamic.services.notification_permission import NotificationPermissionTracker


class PermissionPlatform(Protocol):
    """Access to the operating system permission APIs.

    ``request_permission`` decides whether an unsuccessful request was a
    denial, a permanent denial or a request the platform blocked without
    showing a dialog.
    """

    platform: Platform

    async def get_status(self) -> NotificationPermissionStatus: ...

    async def request_permission(self) -> NotificationInitResult: ...

    async def open_settings(self) -> bool: ...


class FlowPrompter(Protocol):
    """In-app dialogs shown around the system permission request."""

    async def confirm_value_proposition(self) -> bool: ...

    async def confirm_ask_again(self, info: NotificationDenialInfo) -> bool: ...

    async def confirm_go_to_settings(self) -> bool: ...

    async def show_web_instructions(self) -> None: ...


class NotificationPermissionFlow:
    """Run the full value-proposition / ask-again / go-to-settings flow.

    Each outcome of the system request is recorded on the tracker, so later
    runs honour the re-ask and go-to-settings limits of the flow config.
    """

    def __init__(
        self,
        tracker: NotificationPermissionTracker,
        platform: PermissionPlatform,
        prompter: FlowPrompter,
        config: Optional[NotificationFlowConfig] = None,
    ) -> None:
        self.tracker = tracker
        self.platform = platform
        self.prompter = prompter
        self.config = config or NotificationFlowConfig()

    async def run(self, config: Optional[NotificationFlowConfig] = None) -> NotificationFlowResult:
        config = config or self.config
        status = await self.platform.get_status()
        logger.debug("Running notification permission flow", status=status.value)

        if status.is_granted:
            await self.tracker.auto_clear_if_granted(status)
            return NotificationFlowResult.ALREADY_GRANTED

        if status is NotificationPermissionStatus.NOT_DETERMINED:
            if not await self.prompter.confirm_value_proposition():
                return NotificationFlowResult.DECLINED_VALUE_PROPOSITION
            return await self._request()

        if not await self.tracker.can_prompt_for_permission(status, self.platform.platform):
            return await self._go_to_settings(config)

        denial_info = await self.tracker.get_notification_denial_info()

        if not should_ask_again(denial_info, config, self.tracker.now()):
            return NotificationFlowResult.SKIPPED_ASK_AGAIN
        if denial_info is not None and not await self.prompter.confirm_ask_again(denial_info):
            return NotificationFlowResult.SKIPPED_ASK_AGAIN
        return await self._request()

    async def _request(self) -> NotificationFlowResult:
        result = await self.platform.request_permission()
        if result is NotificationInitResult.PERMISSION_DENIED:
            await self.tracker.record_denial(is_permanent=False)
        elif result is NotificationInitResult.PERMISSION_PERMANENTLY_DENIED:
            await self.tracker.record_denial(is_permanent=True)
        elif result is NotificationInitResult.PERMISSION_REQUEST_BLOCKED:
            await self.tracker.record_blocked_request()
        elif result in (NotificationInitResult.SUCCESS, NotificationInitResult.ALREADY_INITIALIZED):
            await self.tracker.auto_clear_if_granted(NotificationPermissionStatus.AUTHORIZED)
            await self.tracker.track_permission_request()
        flow_result = map_init_result_to_flow_result(result)
        logger.info("Permission request finished", init_result=result.value, flow_result=flow_result.value)
        return flow_result

    async def _go_to_settings(self, config: NotificationFlowConfig) -> NotificationFlowResult:
        prompt_info = await self.tracker.get_go_to_settings_prompt_info()
        if not should_show_go_to_settings_prompt(prompt_info, config, self.tracker.now()):
            return NotificationFlowResult.SKIPPED_GO_TO_SETTINGS

        accepted = await self.prompter.confirm_go_to_settings()
        await self.tracker.record_go_to_settings_prompt(opened_settings=accepted)
        if not accepted:
            return NotificationFlowResult.DECLINED_GO_TO_SETTINGS

        if self.platform.platform is Platform.WEB:
            # Browsers cannot open their permission settings programmatically.
            await self.prompter.show_web_instructions()
            return NotificationFlowResult.SHOWN_WEB_INSTRUCTIONS
        await self.platform.open_settings()
        return NotificationFlowResult.OPENED_SETTINGS


__all__ = ["FlowPrompter", "NotificationPermissionFlow", "PermissionPlatform"]
