"""Polls the notification scheduler for due triggers and delivers them."""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...models.reminders import ScheduledNotification
from .delivery import ReminderDeliveryHandler
from .errors import AdapterFailure
from .notifier import NotificationScheduler

logger = get_logger(__name__)


class ReminderDispatcher:
    """Delivers due notifications and hands their payloads to the delivery handler."""

    def __init__(
        self,
        scheduler: NotificationScheduler,
        delivery_handler: ReminderDeliveryHandler,
        check_interval_seconds: int = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scheduler = scheduler
        self.delivery_handler = delivery_handler
        self.check_interval = check_interval_seconds
        self._clock = clock or datetime.now
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the dispatch loop."""

        if self._running:
            logger.warning("Reminder dispatcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._dispatch_loop())
        logger.info(f"Reminder dispatcher started (checking every {self.check_interval} seconds)")

    async def stop(self) -> None:
        """Stop the dispatch loop."""

        if not self._running:
            return

        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Reminder dispatcher stopped")

    async def dispatch_due(self, now: Optional[datetime] = None) -> List[ScheduledNotification]:
        """Deliver everything due at ``now``."""

        now = now or self._clock()
        try:
            due = await self.scheduler.collect_due(now)
        except AdapterFailure as e:
            logger.error(f"Failed to collect due reminders: {e}")
            return []

        for notification in due:
            logger.info(f"🔔 Delivering '{notification.content.title}': {notification.content.body}")
            try:
                await self.delivery_handler.handle_received(notification.content.data)
            except Exception as e:
                logger.error(f"❌ Delivery handler failed for {notification.identifier}: {e}")

        return due

    async def _dispatch_loop(self) -> None:
        while self._running:
            try:
                due = await self.dispatch_due()
                if due:
                    logger.info(f"📋 Delivered {len(due)} due reminder(s)")
                await asyncio.sleep(self.check_interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in reminder dispatch loop: {e}")
                await asyncio.sleep(self.check_interval)
