"""Cleanup of stale one-shots, orphaned triggers and tracked ids."""

from datetime import datetime
from typing import Iterable

from ...logging_config import get_logger
from ...models.reminders import OneShotTrigger
from .errors import AdapterFailure
from .notifier import NotificationScheduler

logger = get_logger(__name__)


async def sweep_stale_one_shots(scheduler: NotificationScheduler, now: datetime) -> int:
    """Cancel every one-shot whose fire time is strictly before ``now``, whatever its category."""
    try:
        notifications = await scheduler.list_all()
    except AdapterFailure as e:
        logger.error(f"❌ Cleanup sweep could not list triggers: {e}")
        return 0

    swept = 0
    for notification in notifications:
        trigger = notification.trigger
        if not isinstance(trigger, OneShotTrigger) or trigger.at >= now:
            continue

        logger.info(f"🧹 Cleaning up past one-shot notification: {notification.content.title}")
        try:
            await scheduler.cancel(notification.identifier)
            swept += 1
        except AdapterFailure as e:
            logger.error(f"❌ Failed to cancel stale one-shot {notification.identifier}: {e}")

    return swept


async def cancel_by_label(scheduler: NotificationScheduler, label: str) -> int:
    """Cancel every live trigger titled ``label``, tracked or not."""
    try:
        notifications = await scheduler.list_all()
    except AdapterFailure as e:
        logger.error(f"❌ Could not list triggers to cancel '{label}': {e}")
        return 0

    canceled = 0
    for notification in notifications:
        if notification.content.title != label:
            continue
        try:
            await scheduler.cancel(notification.identifier)
            canceled += 1
        except AdapterFailure as e:
            logger.error(f"❌ Failed to cancel orphan {notification.identifier}: {e}")

    if canceled:
        logger.info(f"🧹 Cancelled {canceled} live '{label}' trigger(s)")
    return canceled


async def cancel_tracked(scheduler: NotificationScheduler, identifiers: Iterable[str]) -> int:
    """Cancel previously tracked ids; unknown or failing ids are skipped."""
    canceled = 0
    for identifier in identifiers:
        try:
            await scheduler.cancel(identifier)
            canceled += 1
        except AdapterFailure as e:
            logger.warning(f"Failed to cancel tracked trigger {identifier}: {e}")
    return canceled
