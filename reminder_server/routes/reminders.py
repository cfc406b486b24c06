"""Reminder scheduling API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..logging_config import get_logger
from ..models.reminders import PassResult, ReminderSettings, ScheduledNotification
from ..services.reminders.errors import AdapterFailure
from ..services.reminders.runtime import ReminderRuntime, get_reminder_runtime

logger = get_logger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


class NotificationEvent(BaseModel):
    """A delivered or tapped notification, as reported by the host."""
    data: Dict[str, Any] = Field(default_factory=dict)


class SettingsResponse(BaseModel):
    ok: bool = True
    settings: ReminderSettings


class PassResponse(BaseModel):
    ok: bool = True
    result: PassResult


class EventResponse(BaseModel):
    ok: bool = True
    rescheduled: bool
    result: Optional[PassResult] = None


class ScheduledListResponse(BaseModel):
    ok: bool = True
    notifications: List[ScheduledNotification]


class CancelAllResponse(BaseModel):
    ok: bool = True
    canceled: int


async def _save_and_schedule(runtime: ReminderRuntime, settings: ReminderSettings) -> PassResponse:
    try:
        await runtime.settings_provider.save(settings)
    except AdapterFailure as e:
        logger.error(f"Failed to store reminder settings: {e}")
        raise HTTPException(status_code=503, detail="Failed to store reminder settings")

    result = await runtime.engine.schedule_reminders(settings)
    logger.info(f"🌐 WEB API: Settings saved, reminder pass {result.status.value}")
    return PassResponse(result=result)


@router.get("/settings", response_model=SettingsResponse)
async def get_reminder_settings(runtime: ReminderRuntime = Depends(get_reminder_runtime)) -> SettingsResponse:
    """Return the stored reminder settings."""
    return SettingsResponse(settings=await runtime.settings_provider.load())


@router.put("/settings", response_model=PassResponse)
async def save_reminder_settings(
    settings: ReminderSettings,
    runtime: ReminderRuntime = Depends(get_reminder_runtime),
) -> PassResponse:
    """Store reminder settings and reschedule."""
    return await _save_and_schedule(runtime, settings)


@router.put("/settings/user", response_model=PassResponse)
async def save_user_settings(
    payload: Dict[str, Any],
    runtime: ReminderRuntime = Depends(get_reminder_runtime),
) -> PassResponse:
    """Store reminder settings given in the app's flat user-settings shape and reschedule."""
    return await _save_and_schedule(runtime, ReminderSettings.from_user_settings(payload))


@router.post("/schedule", response_model=PassResponse)
async def run_schedule(runtime: ReminderRuntime = Depends(get_reminder_runtime)) -> PassResponse:
    """Run a scheduling pass with the stored settings."""
    settings = await runtime.settings_provider.load()
    return PassResponse(result=await runtime.engine.schedule_reminders(settings))


@router.post("/events/received", response_model=EventResponse)
async def notification_received(
    event: NotificationEvent,
    runtime: ReminderRuntime = Depends(get_reminder_runtime),
) -> EventResponse:
    """Handle a delivered notification."""
    result = await runtime.delivery_handler.handle_received(event.data)
    return EventResponse(rescheduled=result is not None, result=result)


@router.post("/events/tapped", response_model=EventResponse)
async def notification_tapped(
    event: NotificationEvent,
    runtime: ReminderRuntime = Depends(get_reminder_runtime),
) -> EventResponse:
    """Handle a tap on a delivered notification."""
    result = await runtime.delivery_handler.handle_tapped(event.data)
    return EventResponse(rescheduled=result is not None, result=result)


@router.get("/scheduled", response_model=ScheduledListResponse)
async def list_scheduled(runtime: ReminderRuntime = Depends(get_reminder_runtime)) -> ScheduledListResponse:
    """List live triggers."""
    try:
        notifications = await runtime.scheduler.list_all()
    except AdapterFailure as e:
        logger.error(f"Failed to list scheduled reminders: {e}")
        raise HTTPException(status_code=503, detail="Failed to list scheduled reminders")
    return ScheduledListResponse(notifications=notifications)


@router.delete("", response_model=CancelAllResponse)
async def cancel_all(runtime: ReminderRuntime = Depends(get_reminder_runtime)) -> CancelAllResponse:
    """Cancel every reminder trigger."""
    return CancelAllResponse(canceled=await runtime.engine.cancel_all_reminders())
