"""Wiring of stores, adapters and the engine for the running server."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from ...config import Settings, get_settings
from ...logging_config import get_logger
from .delivery import ReminderDeliveryHandler
from .dispatcher import ReminderDispatcher
from .engine import ReminderEngine
from .notifier import (
    InMemoryNotificationScheduler,
    NotificationScheduler,
    SupabaseNotificationScheduler,
)
from .persistence import (
    InMemoryKeyValueStore,
    KeyValueStore,
    StoredSettingsProvider,
    SupabaseKeyValueStore,
)
from .policy import SchedulingPolicy

logger = get_logger(__name__)


@dataclass
class ReminderRuntime:
    """Everything the HTTP layer and background services need."""

    store: KeyValueStore
    scheduler: NotificationScheduler
    engine: ReminderEngine
    settings_provider: StoredSettingsProvider
    delivery_handler: ReminderDeliveryHandler
    dispatcher: ReminderDispatcher


def build_reminder_runtime(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    scheduler: Optional[NotificationScheduler] = None,
) -> ReminderRuntime:
    """Assemble a runtime from settings; explicit adapters take precedence."""
    settings = settings or get_settings()

    if store is None or scheduler is None:
        if settings.uses_supabase:
            logger.info("Using Supabase reminder storage")
            store = store or SupabaseKeyValueStore(table=settings.kv_table)
            scheduler = scheduler or SupabaseNotificationScheduler(table=settings.triggers_table)
        else:
            logger.info("Using in-memory reminder storage")
            store = store or InMemoryKeyValueStore()
            scheduler = scheduler or InMemoryNotificationScheduler()

    engine = ReminderEngine(scheduler, store, policy=SchedulingPolicy.from_settings(settings))
    settings_provider = StoredSettingsProvider(store)
    delivery_handler = ReminderDeliveryHandler(engine, settings_provider)
    dispatcher = ReminderDispatcher(
        scheduler,
        delivery_handler,
        check_interval_seconds=settings.dispatch_interval_seconds,
    )

    return ReminderRuntime(
        store=store,
        scheduler=scheduler,
        engine=engine,
        settings_provider=settings_provider,
        delivery_handler=delivery_handler,
        dispatcher=dispatcher,
    )


@lru_cache(maxsize=1)
def get_reminder_runtime() -> ReminderRuntime:
    """Get cached runtime instance."""
    return build_reminder_runtime()
