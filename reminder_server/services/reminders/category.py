"""Per-category trigger planning and registration.

Every target fire time is classified against "now" as past, near (inside the
bootstrap window) or future:

* Daily: past -> one-shot tomorrow, near -> one-shot today, future -> repeating daily.
* Custom: today's weekday follows the same split except that a past entry gets
  nothing this pass; every other weekday gets a repeating weekly trigger.

One-shots stand in for repeating triggers whose first occurrence is close,
because some hosts fire a freshly registered repeating trigger immediately.
Delivery of a one-shot re-runs scheduling (see ``delivery``).
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ...logging_config import get_logger
from ...models.reminders import (
    FrequencyMode,
    NotificationContent,
    OneShotTrigger,
    ReminderCategory,
    ReminderPreference,
    RepeatingTrigger,
    TimeOfDay,
    TriggerKind,
    TriggerRecord,
    Weekday,
)
from .errors import CategorySchedulingError, PermissionDenied
from .notifier import NotificationScheduler
from .policy import SchedulingPolicy

logger = get_logger(__name__)


class WindowClass(str, Enum):
    """Where a target fire time falls relative to now."""
    PAST = "past"
    NEAR = "near"
    FUTURE = "future"


def classify(delta_seconds: int, near_window_seconds: int = 300) -> WindowClass:
    if delta_seconds < 0:
        return WindowClass.PAST
    if delta_seconds <= near_window_seconds:
        return WindowClass.NEAR
    return WindowClass.FUTURE


def today_at(now: datetime, time: TimeOfDay) -> datetime:
    return now.replace(hour=time.hour, minute=time.minute, second=0, microsecond=0)


def seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from now to target; negative once the target has passed."""
    return math.floor((target - now).total_seconds())


@dataclass(frozen=True)
class PlannedTrigger:
    """A trigger the category needs, before registration."""

    kind: TriggerKind
    fire_at: TimeOfDay
    trigger: Union[OneShotTrigger, RepeatingTrigger]
    weekday: Optional[Weekday] = None
    is_bootstrap: bool = False

    @property
    def fire_timestamp(self) -> Optional[datetime]:
        if isinstance(self.trigger, OneShotTrigger):
            return self.trigger.at
        return None


def _bootstrap(time: TimeOfDay, fire: datetime, weekday: Optional[Weekday] = None) -> PlannedTrigger:
    return PlannedTrigger(
        kind=TriggerKind.ONE_SHOT,
        fire_at=time,
        trigger=OneShotTrigger(at=fire),
        weekday=weekday,
        is_bootstrap=True,
    )


def _repeating(time: TimeOfDay, weekday: Optional[Weekday], timezone: Optional[str]) -> PlannedTrigger:
    return PlannedTrigger(
        kind=TriggerKind.REPEATING,
        fire_at=time,
        trigger=RepeatingTrigger(
            hour=time.hour,
            minute=time.minute,
            weekday=weekday.calendar_number if weekday else None,
            timezone=timezone,
        ),
        weekday=weekday,
    )


def _nudge(fire: datetime, now: datetime, policy: SchedulingPolicy) -> datetime:
    # Keep a clear gap between registration and firing
    if (fire - now).total_seconds() < policy.nudge_threshold_seconds:
        return fire + timedelta(seconds=policy.nudge_seconds)
    return fire


def _plan_daily(preference: ReminderPreference, now: datetime, policy: SchedulingPolicy) -> List[PlannedTrigger]:
    time = TimeOfDay.parse(preference.time, policy.default_time)
    target = today_at(now, time)
    delta = seconds_until(target, now)
    window = classify(delta, policy.near_window_seconds)

    logger.info(f"🕐 Daily check: target={time}, delta={delta}s ({window.value})")

    if window is WindowClass.PAST:
        return [_bootstrap(time, target + timedelta(days=1))]
    if window is WindowClass.NEAR:
        return [_bootstrap(time, _nudge(target, now, policy))]
    return [_repeating(time, None, policy.timezone_for(now))]


def _plan_custom(preference: ReminderPreference, now: datetime, policy: SchedulingPolicy) -> List[PlannedTrigger]:
    today = Weekday.of(now)
    timezone = policy.timezone_for(now)
    planned: List[PlannedTrigger] = []

    for weekday, raw_time in preference.custom_schedule.items():
        if not raw_time:
            continue
        time = TimeOfDay.parse(raw_time, policy.default_time)

        if weekday is today:
            target = today_at(now, time)
            window = classify(seconds_until(target, now), policy.near_window_seconds)
            if window is WindowClass.PAST:
                # Nothing for today's entry once its time has gone
                logger.info(f"⏭️ {weekday.value} {time} already passed today, nothing scheduled this pass")
                continue
            if window is WindowClass.NEAR:
                planned.append(_bootstrap(time, _nudge(target, now, policy), weekday))
                continue

        planned.append(_repeating(time, weekday, timezone))

    return planned


def plan_category(preference: ReminderPreference, now: datetime, policy: SchedulingPolicy) -> List[PlannedTrigger]:
    """Triggers a schedulable category needs at ``now``."""
    if preference.frequency is FrequencyMode.CUSTOM:
        return _plan_custom(preference, now, policy)
    return _plan_daily(preference, now, policy)


def reminder_payload(category: ReminderCategory, planned: PlannedTrigger) -> Dict[str, Any]:
    """Notification data identifying the reminder to the delivery handler."""
    data: Dict[str, Any] = {
        "type": category.payload_type,
        "category": category.key,
        "bootstrap": planned.is_bootstrap,
    }
    if planned.weekday is not None:
        data["weekday"] = planned.weekday.value
    return data


async def schedule_category(
    scheduler: NotificationScheduler,
    category: ReminderCategory,
    preference: ReminderPreference,
    now: datetime,
    policy: SchedulingPolicy,
) -> List[TriggerRecord]:
    """Register the category's planned triggers and return their records.

    Raises ``PermissionDenied`` untouched; any other failure becomes a
    ``CategorySchedulingError`` carrying the records registered so far.
    """
    records: List[TriggerRecord] = []

    for planned in plan_category(preference, now, policy):
        content = NotificationContent(
            title=category.label,
            body=category.body,
            data=reminder_payload(category, planned),
        )

        try:
            identifier = await scheduler.schedule(content, planned.trigger)
        except PermissionDenied:
            raise
        except Exception as e:
            raise CategorySchedulingError(category.key, str(e), records) from e

        records.append(TriggerRecord(
            id=identifier,
            category=category.key,
            kind=planned.kind,
            fire_at=planned.fire_at,
            weekday=planned.weekday,
            is_bootstrap=planned.is_bootstrap,
            fire_timestamp=planned.fire_timestamp,
        ))

        if planned.kind is TriggerKind.ONE_SHOT:
            logger.info(f"🔔 Scheduled one-shot '{category.label}' at {planned.fire_timestamp} (id={identifier})")
        else:
            cadence = f"weekly on {planned.weekday.value}" if planned.weekday else "daily"
            logger.info(f"🔔 Scheduled repeating '{category.label}' {cadence} at {planned.fire_at} (id={identifier})")

    return records
