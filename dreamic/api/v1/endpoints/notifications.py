"""Notification permission tracking endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from dreamic.api import deps
from dreamic.config import settings
from dreamic.core.notifications.flow import NotificationFlowConfig
from dreamic.core.notifications.types import NotificationPermissionStatus, Platform
from dreamic.schemas import (
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
from dreamic.services.notification_permission import NotificationPermissionTracker

router = APIRouter(
    prefix="/installations/{installation_id}/notification-permission",
    tags=["notification-permission"],
)


@router.get("", response_model=PermissionStateRead)
async def read_permission_state(
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> PermissionStateRead:
    """Return the stored permission history for the installation."""

    denial_info = await tracker.get_notification_denial_info()
    settings_info = await tracker.get_go_to_settings_prompt_info()
    return PermissionStateRead(
        denial_info=DenialInfoRead.model_validate(denial_info) if denial_info else None,
        settings_prompt_info=(
            SettingsPromptInfoRead.model_validate(settings_info) if settings_info else None
        ),
        has_requested_before=await tracker.has_requested_permission_before(),
        denial_count=denial_info.denial_count if denial_info else 0,
        request_count=denial_info.request_attempt_count if denial_info else 0,
        last_reminder_date=await tracker.get_last_reminder_date(),
    )


@router.post("/denials", response_model=DenialInfoRead, status_code=status.HTTP_201_CREATED)
async def record_denial(
    payload: DenialRequest,
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> DenialInfoRead:
    info = await tracker.record_denial(is_permanent=payload.is_permanent)
    return DenialInfoRead.model_validate(info)


@router.post("/blocked-requests", response_model=DenialInfoRead, status_code=status.HTTP_201_CREATED)
async def record_blocked_request(
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> DenialInfoRead:
    info = await tracker.record_blocked_request()
    return DenialInfoRead.model_validate(info)


@router.post("/settings-prompts", response_model=SettingsPromptInfoRead, status_code=status.HTTP_201_CREATED)
async def record_settings_prompt(
    payload: SettingsPromptRequest,
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> SettingsPromptInfoRead:
    info = await tracker.record_go_to_settings_prompt(opened_settings=payload.opened_settings)
    return SettingsPromptInfoRead.model_validate(info)


@router.delete("/denial-info", status_code=status.HTTP_204_NO_CONTENT)
async def clear_denial_info(
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> Response:
    await tracker.clear_notification_denial_info()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/settings-prompt-info", status_code=status.HTTP_204_NO_CONTENT)
async def clear_settings_prompt_info(
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> Response:
    await tracker.clear_go_to_settings_prompt_info()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/reminder", response_model=ReminderRead)
async def read_reminder(
    interval_days: int = Query(settings.NOTIFICATION_REMINDER_INTERVAL_DAYS, ge=0, le=3650),
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> ReminderRead:
    """Tell the client whether the periodic reminder is due."""

    return ReminderRead(
        should_show=await tracker.should_show_periodic_reminder(interval_days),
        interval_days=interval_days,
        last_reminder_date=await tracker.get_last_reminder_date(),
    )


@router.post("/reminder", response_model=ReminderRead)
async def mark_reminder_shown(
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> ReminderRead:
    await tracker.update_last_reminder_date()
    interval_days = settings.NOTIFICATION_REMINDER_INTERVAL_DAYS
    return ReminderRead(
        should_show=await tracker.should_show_periodic_reminder(interval_days),
        interval_days=interval_days,
        last_reminder_date=await tracker.get_last_reminder_date(),
    )


@router.post("/status", response_model=AutoClearResponse)
async def report_permission_status(
    payload: PermissionStatusUpdate,
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> AutoClearResponse:
    """Clear stale denial history when the client reports a granted status."""

    cleared = await tracker.auto_clear_if_granted(payload.status)
    return AutoClearResponse(status=payload.status, cleared=cleared)


@router.get("/decision", response_model=PermissionDecision)
async def read_permission_decision(
    permission_status: NotificationPermissionStatus = Query(..., alias="status"),
    platform: Platform = Query(...),
    tracker: NotificationPermissionTracker = Depends(deps.get_permission_tracker),
) -> PermissionDecision:
    """Advise the client on its next permission flow step."""

    config = NotificationFlowConfig.from_settings(settings)
    return PermissionDecision(
        status=permission_status,
        platform=platform,
        should_request=await tracker.should_request_permissions(permission_status, platform, config),
        can_prompt=await tracker.can_prompt_for_permission(permission_status, platform),
        should_show_settings_prompt=await tracker.should_show_settings_prompt(
            permission_status, platform, config
        ),
        should_show_rationale=await tracker.should_show_permission_rationale(platform),
        optimal_context=await tracker.get_optimal_context(),
    )
