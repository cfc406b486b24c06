"""Local reminder scheduling engine."""

from .delivery import ReminderDeliveryHandler
from .dispatcher import ReminderDispatcher
from .engine import ReminderEngine
from .errors import AdapterFailure, CategorySchedulingError, PermissionDenied, ReminderError
from .notifier import InMemoryNotificationScheduler, NotificationScheduler, SupabaseNotificationScheduler
from .persistence import InMemoryKeyValueStore, KeyValueStore, StoredSettingsProvider, SupabaseKeyValueStore
from .policy import SchedulingPolicy
from .runtime import ReminderRuntime, build_reminder_runtime, get_reminder_runtime

__all__ = [
    "AdapterFailure",
    "CategorySchedulingError",
    "InMemoryKeyValueStore",
    "InMemoryNotificationScheduler",
    "KeyValueStore",
    "NotificationScheduler",
    "PermissionDenied",
    "ReminderDeliveryHandler",
    "ReminderDispatcher",
    "ReminderEngine",
    "ReminderError",
    "ReminderRuntime",
    "SchedulingPolicy",
    "StoredSettingsProvider",
    "SupabaseKeyValueStore",
    "SupabaseNotificationScheduler",
    "build_reminder_runtime",
    "get_reminder_runtime",
]
