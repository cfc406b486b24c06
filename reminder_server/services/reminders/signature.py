"""Settings signature and the full-pass gate."""

import hashlib
import json
from typing import Any, Dict, Mapping

from ...logging_config import get_logger
from ...models.reminders import (
    DEFAULT_CATEGORIES,
    ReminderCategory,
    ReminderSettings,
    TriggerStore,
    Weekday,
)

logger = get_logger(__name__)


def _normalize_schedule(schedule: Mapping[Any, Any]) -> Dict[str, str]:
    """Custom schedule with string keys in lexicographic order and string values."""
    entries = []
    for key, value in schedule.items():
        name = key.value if isinstance(key, Weekday) else str(key)
        entries.append((name, "" if value is None else str(value)))
    return dict(sorted(entries))


def signature_payload(
    settings: ReminderSettings,
    categories: Mapping[str, ReminderCategory] = DEFAULT_CATEGORIES,
) -> Dict[str, Any]:
    """The subset of settings that affects scheduling."""
    payload: Dict[str, Any] = {
        "notificationsEnabled": settings.notifications_enabled,
        "categories": {},
    }
    for key in sorted(categories):
        preference = settings.preference_for(key)
        payload["categories"][key] = {
            "enabled": preference.enabled,
            "notify": preference.notify,
            "time": preference.time.strip(),
            "freq": preference.frequency.value,
            "custom": _normalize_schedule(preference.custom_schedule),
        }
    return payload


def signature_of(
    settings: ReminderSettings,
    categories: Mapping[str, ReminderCategory] = DEFAULT_CATEGORIES,
) -> str:
    """SHA-256 of the canonical JSON form of ``signature_payload``."""
    canonical = json.dumps(
        signature_payload(settings, categories),
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def should_run_full_pass(
    settings: ReminderSettings,
    store: TriggerStore,
    categories: Mapping[str, ReminderCategory] = DEFAULT_CATEGORIES,
) -> bool:
    """True when the settings changed or nothing is tracked as scheduled."""
    new_signature = signature_of(settings, categories)
    has_schedules = store.has_tracked_triggers

    logger.info(
        f"🔍 Signature check: prev={'exists' if store.last_signature else 'none'}, "
        f"match={store.last_signature == new_signature}, hasSchedules={has_schedules}"
    )

    if new_signature != store.last_signature:
        return True
    if not has_schedules:
        return True

    logger.info("⏭️ Skipping reminder reschedule: settings unchanged")
    return False
