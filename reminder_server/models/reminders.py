"""Data models for reminder preferences, triggers and scheduling passes."""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIME = "09:00"

_TIME_PATTERN = re.compile(r"^\s*(-?\d+)\s*(?::\s*(-?\d+))?")


class FrequencyMode(str, Enum):
    """How often a category reminds."""
    DAILY = "Daily"
    CUSTOM = "Custom"

    @classmethod
    def coerce(cls, value: Any) -> "FrequencyMode":
        """Match a frequency case-insensitively, falling back to Daily."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == text:
                return mode
        return cls.DAILY


class Weekday(str, Enum):
    """Weekday keys as stored in a custom schedule."""
    SUN = "sun"
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"

    @property
    def calendar_number(self) -> int:
        """Notification calendar weekday (1 = Sunday .. 7 = Saturday)."""
        return _CALENDAR_NUMBERS[self]

    @classmethod
    def from_calendar_number(cls, number: int) -> "Weekday":
        for weekday, value in _CALENDAR_NUMBERS.items():
            if value == number:
                return weekday
        raise ValueError(f"Invalid calendar weekday: {number}")

    @classmethod
    def of(cls, moment: datetime) -> "Weekday":
        """Weekday of a datetime (Python counts Monday as 0)."""
        return cls.from_calendar_number((moment.weekday() + 1) % 7 + 1)


_CALENDAR_NUMBERS = {
    Weekday.SUN: 1,
    Weekday.MON: 2,
    Weekday.TUE: 3,
    Weekday.WED: 4,
    Weekday.THU: 5,
    Weekday.FRI: 6,
    Weekday.SAT: 7,
}


class TimeOfDay(BaseModel):
    """Wall-clock time of a reminder."""
    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @classmethod
    def parse(cls, value: Any, fallback: str = DEFAULT_TIME) -> "TimeOfDay":
        """Parse ``HH:mm`` leniently.

        Out-of-range components are clamped (hour to 0-23, minute to 0-59) and
        anything unparsable resolves to ``fallback``. Never raises.
        """
        text = str(value or "").strip() or fallback
        match = _TIME_PATTERN.match(text) or _TIME_PATTERN.match(fallback) or _TIME_PATTERN.match(DEFAULT_TIME)
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        return cls(hour=max(0, min(23, hour)), minute=max(0, min(59, minute)))

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class ReminderCategory(BaseModel):
    """A reminder domain with a fixed label used as title and orphan-matching key."""
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    body: str
    payload_type: str
    settings_prefix: str  # e.g. "mood" -> moodReminderTime
    notify_field: str  # app-level per-category toggle, e.g. notifMoodTracking


DEFAULT_CATEGORIES: Dict[str, ReminderCategory] = {
    "mood": ReminderCategory(
        key="mood",
        label="Mood check-in",
        body="How are you feeling today?",
        payload_type="mood",
        settings_prefix="mood",
        notify_field="notifMoodTracking",
    ),
    "journal": ReminderCategory(
        key="journal",
        label="Journaling reminder",
        body="Take a moment to jot your thoughts.",
        payload_type="journaling",
        settings_prefix="journal",
        notify_field="notifJournaling",
    ),
}


class ReminderPreference(BaseModel):
    """Per-category reminder preference."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    notify: bool = True
    frequency: FrequencyMode = FrequencyMode.DAILY
    time: str = DEFAULT_TIME
    custom_schedule: Dict[Weekday, Optional[str]] = Field(default_factory=dict)

    @field_validator("frequency", mode="before")
    @classmethod
    def _coerce_frequency(cls, value: Any) -> FrequencyMode:
        return FrequencyMode.coerce(value)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ReminderSettings(BaseModel):
    """Full preference set for one scheduling pass."""
    model_config = ConfigDict(frozen=True)

    notifications_enabled: bool = True
    preferences: Dict[str, ReminderPreference] = Field(default_factory=dict)

    def preference_for(self, category_key: str) -> ReminderPreference:
        return self.preferences.get(category_key) or ReminderPreference()

    def is_schedulable(self, category_key: str) -> bool:
        """Global flag, category notify flag and preference flag must all be set."""
        preference = self.preference_for(category_key)
        return self.notifications_enabled and preference.enabled and preference.notify

    @classmethod
    def from_user_settings(
        cls,
        data: Dict[str, Any],
        categories: Optional[Dict[str, ReminderCategory]] = None,
    ) -> "ReminderSettings":
        """Build settings from the app's flat user-settings document.

        Reads ``notificationsEnabled`` plus, per category prefix,
        ``<prefix>ReminderEnabled``, ``<prefix>ReminderTime``,
        ``<prefix>ReminderFrequency`` and ``<prefix>ReminderCustomSchedule``.
        Unknown weekday keys are dropped.
        """
        preferences: Dict[str, ReminderPreference] = {}
        for category in (categories or DEFAULT_CATEGORIES).values():
            prefix = category.settings_prefix
            raw_schedule = data.get(f"{prefix}ReminderCustomSchedule") or {}
            custom_schedule: Dict[Weekday, Optional[str]] = {}
            if isinstance(raw_schedule, dict):
                for key, value in raw_schedule.items():
                    try:
                        weekday = Weekday(str(key).strip().lower())
                    except ValueError:
                        continue
                    custom_schedule[weekday] = None if value is None else str(value)

            preferences[category.key] = ReminderPreference(
                enabled=bool(data.get(f"{prefix}ReminderEnabled", False)),
                notify=bool(data.get(category.notify_field, True)),
                frequency=data.get(f"{prefix}ReminderFrequency"),
                time=data.get(f"{prefix}ReminderTime") or DEFAULT_TIME,
                custom_schedule=custom_schedule,
            )

        return cls(
            notifications_enabled=bool(data.get("notificationsEnabled", True)),
            preferences=preferences,
        )


class TriggerKind(str, Enum):
    """Kinds of scheduled triggers."""
    ONE_SHOT = "one_shot"
    REPEATING = "repeating"


class NotificationContent(BaseModel):
    """Content handed to the notification scheduler."""
    title: str
    body: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class OneShotTrigger(BaseModel):
    """Fires once at an absolute instant."""
    kind: Literal["one_shot"] = "one_shot"
    at: datetime


class RepeatingTrigger(BaseModel):
    """Fires every day, or every week when ``weekday`` is set (1 = Sunday)."""
    kind: Literal["repeating"] = "repeating"
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    weekday: Optional[int] = Field(default=None, ge=1, le=7)
    timezone: Optional[str] = None


TriggerSpec = Annotated[Union[OneShotTrigger, RepeatingTrigger], Field(discriminator="kind")]


class ScheduledNotification(BaseModel):
    """A live trigger as reported by the notification scheduler."""
    identifier: str
    content: NotificationContent
    trigger: TriggerSpec
    next_fire_at: Optional[datetime] = None


class TriggerRecord(BaseModel):
    """A trigger emitted by the category scheduler."""
    id: str
    category: str
    kind: TriggerKind
    fire_at: TimeOfDay
    weekday: Optional[Weekday] = None
    is_bootstrap: bool = False
    fire_timestamp: Optional[datetime] = None


class TriggerStore(BaseModel):
    """Persisted bookkeeping: tracked trigger ids per category and the last signature."""
    ids: Dict[str, List[str]] = Field(default_factory=dict)
    last_signature: Optional[str] = None

    def ids_for(self, category_key: str) -> List[str]:
        return list(self.ids.get(category_key, []))

    @property
    def has_tracked_triggers(self) -> bool:
        return any(self.ids.values())


class PassStatus(str, Enum):
    """Outcome of a scheduling pass."""
    FULL = "full"
    SKIPPED = "skipped"
    ABORTED = "aborted"


class PassResult(BaseModel):
    """Summary of one ``schedule_reminders`` invocation."""
    status: PassStatus
    signature: Optional[str] = None
    scheduled: Dict[str, List[TriggerRecord]] = Field(default_factory=dict)
    failed_categories: List[str] = Field(default_factory=list)
    swept: int = 0
    trimmed: int = 0
