"""Re-runs scheduling when a reminder notification is delivered or tapped."""

from typing import Any, Awaitable, Callable, Mapping, Optional

from ...logging_config import get_logger
from ...models.reminders import DEFAULT_CATEGORIES, PassResult, ReminderCategory, ReminderSettings
from .engine import ReminderEngine

logger = get_logger(__name__)

SettingsProvider = Callable[[], Awaitable[ReminderSettings]]


class ReminderDeliveryHandler:
    """Turns delivery events into scheduling passes with freshly loaded settings.

    A delivered bootstrap one-shot forces a full pass so its category can be
    re-planned; other reminder deliveries go through the signature gate.
    """

    def __init__(
        self,
        engine: ReminderEngine,
        settings_provider: SettingsProvider,
        categories: Optional[Mapping[str, ReminderCategory]] = None,
    ):
        self.engine = engine
        self.settings_provider = settings_provider
        self._payload_types = {
            category.payload_type for category in (categories or DEFAULT_CATEGORIES).values()
        }

    def is_reminder_payload(self, data: Optional[Mapping[str, Any]]) -> bool:
        return bool(data) and data.get("type") in self._payload_types

    async def handle_received(self, data: Optional[Mapping[str, Any]]) -> Optional[PassResult]:
        return await self._reschedule(data, "received")

    async def handle_tapped(self, data: Optional[Mapping[str, Any]]) -> Optional[PassResult]:
        return await self._reschedule(data, "tapped")

    async def _reschedule(self, data: Optional[Mapping[str, Any]], event: str) -> Optional[PassResult]:
        if not self.is_reminder_payload(data):
            logger.debug(f"Ignoring {event} notification without reminder payload")
            return None

        settings = await self.settings_provider()
        bootstrap = bool(data.get("bootstrap"))
        logger.info(f"🔁 Reminder {event} (type={data.get('type')}, bootstrap={bootstrap}), rescheduling")
        return await self.engine.schedule_reminders(settings, force=bootstrap)
