"""Tunable scheduling thresholds."""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...config import Settings
from ...models.reminders import DEFAULT_TIME


def _zone_name(candidate: Optional[str]) -> Optional[str]:
    """``candidate`` when it names an IANA zone, else None."""
    candidate = (candidate or "").strip()
    if not candidate:
        return None
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return candidate


@dataclass(frozen=True)
class SchedulingPolicy:
    """Thresholds shared by the category scheduler and the deduplication auditor."""

    near_window_seconds: int = 300
    nudge_threshold_seconds: int = 3
    nudge_seconds: int = 2
    default_time: str = DEFAULT_TIME
    max_weekly_triggers: int = 7
    max_daily_triggers: int = 1
    timezone: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingPolicy":
        return cls(
            near_window_seconds=settings.near_window_seconds,
            nudge_threshold_seconds=settings.nudge_threshold_seconds,
            nudge_seconds=settings.nudge_seconds,
            default_time=settings.default_reminder_time,
            max_weekly_triggers=settings.max_weekly_triggers,
            max_daily_triggers=settings.max_daily_triggers,
            timezone=settings.reminder_timezone,
        )

    def timezone_for(self, now: datetime) -> Optional[str]:
        """IANA zone name stamped on repeating triggers.

        The configured zone wins, then the zone ``now`` carries, then ``TZ``.
        Returns None when no zone name is known; the trigger then fires on the
        host's local wall clock. Abbreviations such as "CET" are never returned.
        """
        if self.timezone:
            return self.timezone
        key = getattr(now.tzinfo, "key", None)
        if key:
            return key
        return _zone_name(os.getenv("TZ"))
