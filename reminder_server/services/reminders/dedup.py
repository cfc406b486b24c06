"""Opportunistic cap on live triggers per category label."""

from collections import Counter
from typing import Dict, Iterable, Mapping

from ...logging_config import get_logger
from ...models.reminders import FrequencyMode, ReminderCategory, ReminderSettings
from .errors import AdapterFailure
from .notifier import NotificationScheduler
from .policy import SchedulingPolicy

logger = get_logger(__name__)


def dedup_limits(
    settings: ReminderSettings,
    categories: Mapping[str, ReminderCategory],
    policy: SchedulingPolicy,
) -> Dict[str, int]:
    """Maximum live triggers per label: one per weekday for custom schedules, one for daily."""
    limits = {}
    for category in categories.values():
        if settings.preference_for(category.key).frequency is FrequencyMode.CUSTOM:
            limits[category.label] = policy.max_weekly_triggers
        else:
            limits[category.label] = policy.max_daily_triggers
    return limits


async def audit_and_trim(
    scheduler: NotificationScheduler,
    max_per_label: Mapping[str, int],
    tracked_ids: Iterable[str] = (),
) -> int:
    """Cancel triggers beyond each label's maximum. Returns the number cancelled.

    Untracked triggers go first, in listing order, so the ids kept in the
    trigger store keep pointing at live triggers.
    """
    try:
        notifications = await scheduler.list_all()
    except AdapterFailure as e:
        logger.error(f"❌ De-duplication audit could not list triggers: {e}")
        return 0

    tracked = set(tracked_ids)
    # Stable sort: untracked first, listing order otherwise kept
    notifications = sorted(notifications, key=lambda notification: notification.identifier in tracked)
    counts = Counter(notification.content.title for notification in notifications)
    trimmed = 0

    for notification in notifications:
        label = notification.content.title
        limit = max_per_label.get(label)
        if limit is None or counts[label] <= limit:
            continue
        try:
            await scheduler.cancel(notification.identifier)
        except AdapterFailure as e:
            logger.error(f"❌ Failed to trim duplicate {notification.identifier}: {e}")
            continue
        counts[label] -= 1
        trimmed += 1

    if trimmed:
        logger.info(f"🧹 Trimmed {trimmed} duplicate reminder trigger(s)")
    return trimmed
