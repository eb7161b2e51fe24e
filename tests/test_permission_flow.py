"""Tests for the notification permission flow orchestration."""
from __future__ import annotations

import pytest

from dreamic.core.notifications.flow import NotificationFlowConfig
from dreamic.core.notifications.types import (
    NotificationFlowResult,
    NotificationInitResult,
    NotificationPermissionStatus,
    Platform,
)
from dreamic.services.permission_flow import NotificationPermissionFlow


class StubPlatform:
    def __init__(
        self,
        platform: Platform,
        status: NotificationPermissionStatus,
        request_result: NotificationInitResult = NotificationInitResult.SUCCESS,
    ):
        self.platform = platform
        self.status = status
        self.request_result = request_result
        self.request_calls = 0
        self.settings_opened = 0

    async def get_status(self):
        return self.status

    async def request_permission(self):
        self.request_calls += 1
        return self.request_result

    async def open_settings(self):
        self.settings_opened += 1
        return True


class StubPrompter:
    def __init__(self, value_proposition=True, ask_again=True, go_to_settings=True):
        self.answers = {
            "value_proposition": value_proposition,
            "ask_again": ask_again,
            "go_to_settings": go_to_settings,
        }
        self.shown: list[str] = []
        self.ask_again_info = None

    async def confirm_value_proposition(self):
        self.shown.append("value_proposition")
        return self.answers["value_proposition"]

    async def confirm_ask_again(self, info):
        self.shown.append("ask_again")
        self.ask_again_info = info
        return self.answers["ask_again"]

    async def confirm_go_to_settings(self):
        self.shown.append("go_to_settings")
        return self.answers["go_to_settings"]

    async def show_web_instructions(self):
        self.shown.append("web_instructions")


def _flow(tracker, platform, prompter, **config):
    return NotificationPermissionFlow(tracker, platform, prompter, NotificationFlowConfig(**config))


@pytest.mark.asyncio
async def test_already_granted_clears_history(tracker):
    await tracker.record_denial(is_permanent=False)
    platform = StubPlatform(Platform.ANDROID, NotificationPermissionStatus.AUTHORIZED)
    prompter = StubPrompter()

    result = await _flow(tracker, platform, prompter).run()

    assert result is NotificationFlowResult.ALREADY_GRANTED
    assert prompter.shown == []
    assert platform.request_calls == 0
    assert await tracker.get_notification_denial_info() is None


@pytest.mark.asyncio
async def test_first_run_shows_value_proposition_then_requests(tracker):
    platform = StubPlatform(Platform.IOS, NotificationPermissionStatus.NOT_DETERMINED)
    prompter = StubPrompter()

    result = await _flow(tracker, platform, prompter).run()

    assert result is NotificationFlowResult.GRANTED
    assert prompter.shown == ["value_proposition"]
    assert platform.request_calls == 1
    assert await tracker.has_requested_permission_before() is True


@pytest.mark.asyncio
async def test_declined_value_proposition_skips_request(tracker):
    platform = StubPlatform(Platform.IOS, NotificationPermissionStatus.NOT_DETERMINED)
    prompter = StubPrompter(value_proposition=False)

    result = await _flow(tracker, platform, prompter).run()

    assert result is NotificationFlowResult.DECLINED_VALUE_PROPOSITION
    assert platform.request_calls == 0
    assert await tracker.has_requested_permission_before() is False


@pytest.mark.asyncio
async def test_denied_request_is_recorded(tracker):
    platform = StubPlatform(
        Platform.ANDROID,
        NotificationPermissionStatus.NOT_DETERMINED,
        NotificationInitResult.PERMISSION_DENIED,
    )

    result = await _flow(tracker, platform, StubPrompter()).run()

    assert result is NotificationFlowResult.DENIED_PERMISSION
    info = await tracker.get_notification_denial_info()
    assert info.denial_count == 1
    assert info.is_permanent is False


@pytest.mark.asyncio
async def test_permanent_denial_is_recorded(tracker):
    platform = StubPlatform(
        Platform.IOS,
        NotificationPermissionStatus.NOT_DETERMINED,
        NotificationInitResult.PERMISSION_PERMANENTLY_DENIED,
    )

    result = await _flow(tracker, platform, StubPrompter()).run()

    assert result is NotificationFlowResult.DENIED_PERMANENTLY
    assert (await tracker.get_notification_denial_info()).is_permanent is True


@pytest.mark.asyncio
async def test_blocked_request_is_not_a_denial(tracker):
    platform = StubPlatform(
        Platform.ANDROID,
        NotificationPermissionStatus.DENIED,
        NotificationInitResult.PERMISSION_REQUEST_BLOCKED,
    )

    result = await _flow(tracker, platform, StubPrompter()).run()

    assert result is NotificationFlowResult.DENIED_PERMISSION
    assert await tracker.get_permission_denial_count() == 0
    assert await tracker.get_permission_request_count() == 1


@pytest.mark.asyncio
async def test_ask_again_waits_for_interval(tracker, clock):
    await tracker.record_denial(is_permanent=False)
    platform = StubPlatform(Platform.ANDROID, NotificationPermissionStatus.DENIED)
    prompter = StubPrompter()
    flow = _flow(tracker, platform, prompter)

    clock.advance(days=3)
    assert await flow.run() is NotificationFlowResult.SKIPPED_ASK_AGAIN
    assert prompter.shown == []

    clock.advance(days=4)
    assert await flow.run() is NotificationFlowResult.GRANTED
    assert prompter.shown == ["ask_again"]
    assert prompter.ask_again_info.denial_count == 1
    assert await tracker.get_notification_denial_info() is None


@pytest.mark.asyncio
async def test_declined_ask_again(tracker, clock):
    await tracker.record_denial(is_permanent=False)
    clock.advance(days=10)
    platform = StubPlatform(Platform.WEB, NotificationPermissionStatus.DENIED)

    result = await _flow(tracker, platform, StubPrompter(ask_again=False)).run()

    assert result is NotificationFlowResult.SKIPPED_ASK_AGAIN
    assert platform.request_calls == 0


@pytest.mark.asyncio
async def test_denied_on_ios_opens_settings(tracker):
    platform = StubPlatform(Platform.IOS, NotificationPermissionStatus.DENIED)
    prompter = StubPrompter()

    result = await _flow(tracker, platform, prompter).run()

    assert result is NotificationFlowResult.OPENED_SETTINGS
    assert prompter.shown == ["go_to_settings"]
    assert platform.settings_opened == 1
    prompt_info = await tracker.get_go_to_settings_prompt_info()
    assert prompt_info.prompt_count == 1
    assert prompt_info.last_action_was_open_settings is True


@pytest.mark.asyncio
async def test_declined_go_to_settings_is_recorded(tracker):
    platform = StubPlatform(Platform.MACOS, NotificationPermissionStatus.DENIED)

    result = await _flow(tracker, platform, StubPrompter(go_to_settings=False)).run()

    assert result is NotificationFlowResult.DECLINED_GO_TO_SETTINGS
    assert platform.settings_opened == 0
    assert (await tracker.get_go_to_settings_prompt_info()).last_action_was_open_settings is False


@pytest.mark.asyncio
async def test_go_to_settings_prompt_is_throttled(tracker, clock):
    platform = StubPlatform(Platform.IOS, NotificationPermissionStatus.DENIED)
    flow = _flow(tracker, platform, StubPrompter(go_to_settings=False))

    assert await flow.run() is NotificationFlowResult.DECLINED_GO_TO_SETTINGS
    clock.advance(days=10)
    assert await flow.run() is NotificationFlowResult.SKIPPED_GO_TO_SETTINGS
    clock.advance(days=20)
    assert await flow.run() is NotificationFlowResult.DECLINED_GO_TO_SETTINGS


@pytest.mark.asyncio
async def test_go_to_settings_disabled(tracker):
    platform = StubPlatform(Platform.IOS, NotificationPermissionStatus.DENIED)
    prompter = StubPrompter()

    result = await _flow(tracker, platform, prompter, show_go_to_settings_prompt=False).run()

    assert result is NotificationFlowResult.SKIPPED_GO_TO_SETTINGS
    assert prompter.shown == []


@pytest.mark.asyncio
async def test_web_shows_instructions_after_repeated_denials(tracker):
    await tracker.record_denial(is_permanent=False)
    await tracker.record_denial(is_permanent=False)
    platform = StubPlatform(Platform.WEB, NotificationPermissionStatus.DENIED)
    prompter = StubPrompter()

    result = await _flow(tracker, platform, prompter).run()

    assert result is NotificationFlowResult.SHOWN_WEB_INSTRUCTIONS
    assert prompter.shown == ["go_to_settings", "web_instructions"]
    assert platform.settings_opened == 0


@pytest.mark.asyncio
async def test_run_accepts_config_override(tracker, clock):
    await tracker.record_denial(is_permanent=False)
    clock.advance(days=30)
    platform = StubPlatform(Platform.ANDROID, NotificationPermissionStatus.DENIED)
    flow = _flow(tracker, platform, StubPrompter())

    result = await flow.run(NotificationFlowConfig(max_ask_count=1))

    assert result is NotificationFlowResult.SKIPPED_ASK_AGAIN
    assert platform.request_calls == 0
