"""Background services: app-start scheduling pass and reminder delivery."""

from typing import Optional

from ..config import get_settings
from ..logging_config import get_logger
from .reminders.runtime import ReminderRuntime, get_reminder_runtime

logger = get_logger(__name__)


class BackgroundServiceManager:
    """Manages all background services for the Reminder Scheduler."""

    def __init__(self, runtime: Optional[ReminderRuntime] = None):
        self.settings = get_settings()
        self._runtime = runtime
        self._running = False

    @property
    def runtime(self) -> ReminderRuntime:
        if self._runtime is None:
            self._runtime = get_reminder_runtime()
        return self._runtime

    async def start_services(self) -> None:
        """Run the app-start scheduling pass and start the dispatcher."""

        if self._running:
            logger.warning("Background services already running")
            return

        logger.info("Starting background services...")

        try:
            if self.settings.uses_supabase:
                from .supabase_client import verify_reminder_tables
                await verify_reminder_tables()

            settings = await self.runtime.settings_provider.load()
            result = await self.runtime.engine.schedule_reminders(settings)
            logger.info(f"⏰ App-start reminder pass: {result.status.value}")

            await self.runtime.dispatcher.start()
            logger.info("Reminder dispatcher started")

            self._running = True
            logger.info("All background services started successfully")

        except Exception as e:
            logger.error(f"Failed to start background services: {e}")
            await self.stop_services()

    async def stop_services(self) -> None:
        """Stop all background services."""

        logger.info("Stopping background services...")

        try:
            await self.runtime.dispatcher.stop()
        except Exception as e:
            logger.error(f"Error stopping background services: {e}")

        self._running = False
        logger.info("Background services stopped")

    def is_running(self) -> bool:
        """Check if background services are running."""
        return self._running


# Global background service manager
_background_manager = BackgroundServiceManager()


def get_background_manager() -> BackgroundServiceManager:
    """Get the global background service manager."""
    return _background_manager
