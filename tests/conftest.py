"""Shared fixtures for reminder scheduling tests.

Every test runs against a frozen clock (Monday 2026-10-19 12:00) so window
classification never depends on wall-clock time.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytest

from reminder_server.models.reminders import (
    FrequencyMode,
    ReminderPreference,
    ReminderSettings,
)
from reminder_server.services.reminders.engine import ReminderEngine
from reminder_server.services.reminders.notifier import InMemoryNotificationScheduler
from reminder_server.services.reminders.persistence import InMemoryKeyValueStore
from reminder_server.services.reminders.policy import SchedulingPolicy

NOW = datetime(2026, 10, 19, 12, 0, 0)  # a Monday


class FakeClock:
    """Mutable clock shared by the engine, scheduler and dispatcher."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def hhmm(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def make_settings(
    mood: Optional[Dict[str, Any]] = None,
    journal: Optional[Dict[str, Any]] = None,
    notifications_enabled: bool = True,
) -> ReminderSettings:
    """Settings with the given preference fields; omitted categories are disabled."""
    preferences = {}
    if mood is not None:
        preferences["mood"] = ReminderPreference(**{"enabled": True, **mood})
    if journal is not None:
        preferences["journal"] = ReminderPreference(**{"enabled": True, **journal})
    return ReminderSettings(notifications_enabled=notifications_enabled, preferences=preferences)


def daily(time: str) -> Dict[str, Any]:
    return {"frequency": FrequencyMode.DAILY, "time": time}


def custom(schedule: Dict[str, Optional[str]]) -> Dict[str, Any]:
    return {"frequency": FrequencyMode.CUSTOM, "custom_schedule": schedule}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock) -> InMemoryNotificationScheduler:
    return InMemoryNotificationScheduler(clock=clock)


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def policy() -> SchedulingPolicy:
    return SchedulingPolicy(timezone="Europe/Berlin")


@pytest.fixture
def engine(scheduler, kv, policy, clock) -> ReminderEngine:
    return ReminderEngine(scheduler, kv, policy=policy, clock=clock)
