"""Notification scheduler adapters: the boundary over local trigger registration."""

import itertools
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ...config import get_settings
from ...logging_config import get_logger
from ...models.reminders import (
    NotificationContent,
    OneShotTrigger,
    RepeatingTrigger,
    ScheduledNotification,
    Weekday,
)
from ..supabase_client import get_supabase_client
from .errors import AdapterFailure, PermissionDenied

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def next_fire_at(trigger: Any, after: datetime) -> datetime:
    """Next instant a trigger fires after ``after``.

    One-shots always report their own instant, even when it already passed.
    """
    if isinstance(trigger, OneShotTrigger):
        return trigger.at

    candidate = after.replace(hour=trigger.hour, minute=trigger.minute, second=0, microsecond=0)
    if trigger.weekday is None:
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate

    candidate += timedelta(days=(trigger.weekday - Weekday.of(after).calendar_number) % 7)
    if candidate <= after:
        candidate += timedelta(days=7)
    return candidate


class NotificationScheduler:
    """Registers, cancels and lists local notification triggers."""

    async def ensure_permissions(self) -> bool:
        return True

    async def schedule(self, content: NotificationContent, trigger: Any) -> str:
        raise NotImplementedError

    async def cancel(self, identifier: str) -> None:
        raise NotImplementedError

    async def list_all(self) -> List[ScheduledNotification]:
        raise NotImplementedError

    async def collect_due(self, now: datetime) -> List[ScheduledNotification]:
        """Consume notifications due at ``now``.

        One-shots are removed; repeating triggers move on to their next occurrence.
        """
        raise NotImplementedError


class InMemoryNotificationScheduler(NotificationScheduler):
    """Device-local trigger registry kept in process memory."""

    def __init__(self, permission_granted: bool = True, clock: Optional[Clock] = None):
        self.permission_granted = permission_granted
        self._clock = clock or datetime.now
        self._notifications: Dict[str, ScheduledNotification] = {}
        self._ids = itertools.count(1)
        self.schedule_calls = 0
        self.cancel_calls = 0

    async def ensure_permissions(self) -> bool:
        return self.permission_granted

    async def schedule(self, content: NotificationContent, trigger: Any) -> str:
        if not self.permission_granted:
            raise PermissionDenied("Notification permission not granted")

        identifier = f"notif-{next(self._ids)}"
        self._notifications[identifier] = ScheduledNotification(
            identifier=identifier,
            content=content,
            trigger=trigger,
            next_fire_at=next_fire_at(trigger, self._clock()),
        )
        self.schedule_calls += 1
        return identifier

    async def cancel(self, identifier: str) -> None:
        self.cancel_calls += 1
        self._notifications.pop(identifier, None)

    async def list_all(self) -> List[ScheduledNotification]:
        return [notification.model_copy() for notification in self._notifications.values()]

    async def collect_due(self, now: datetime) -> List[ScheduledNotification]:
        due: List[ScheduledNotification] = []
        for identifier, notification in list(self._notifications.items()):
            if notification.next_fire_at is None or notification.next_fire_at > now:
                continue
            due.append(notification)
            if isinstance(notification.trigger, OneShotTrigger):
                del self._notifications[identifier]
            else:
                self._notifications[identifier] = notification.model_copy(
                    update={"next_fire_at": next_fire_at(notification.trigger, now)}
                )
        return due

    def reset_counters(self) -> None:
        self.schedule_calls = 0
        self.cancel_calls = 0


class SupabaseNotificationScheduler(NotificationScheduler):
    """Trigger rows in a Supabase table, polled by the dispatcher."""

    def __init__(self, client: Any = None, table: Optional[str] = None, clock: Optional[Clock] = None):
        self.client = client if client is not None else get_supabase_client()
        self.table = table or get_settings().triggers_table
        self._clock = clock or datetime.now

    def _require_client(self) -> Any:
        if not self.client:
            raise AdapterFailure("Supabase client not available")
        return self.client

    async def schedule(self, content: NotificationContent, trigger: Any) -> str:
        client = self._require_client()

        data = {
            "title": content.title,
            "body": content.body,
            "data": content.data,
            "trigger_type": "one_time" if isinstance(trigger, OneShotTrigger) else "recurring",
            "trigger": trigger.model_dump(mode="json"),
            "scheduled_time": next_fire_at(trigger, self._clock()).isoformat(),
            "created_at": self._clock().isoformat(),
            "active": True,
        }

        try:
            result = client.table(self.table).insert(data).execute()
        except Exception as e:
            raise AdapterFailure(f"Failed to schedule '{content.title}': {e}") from e

        if not result.data:
            raise AdapterFailure(f"Failed to schedule '{content.title}': no row returned")

        identifier = str(result.data[0]['id'])
        logger.debug(f"Created trigger row {identifier}: {content.title}")
        return identifier

    async def cancel(self, identifier: str) -> None:
        client = self._require_client()

        try:
            client.table(self.table) \
                .update({"active": False}) \
                .eq('id', identifier) \
                .execute()
        except Exception as e:
            raise AdapterFailure(f"Failed to cancel trigger {identifier}: {e}") from e

    async def list_all(self) -> List[ScheduledNotification]:
        client = self._require_client()

        try:
            result = (
                client
                .table(self.table)
                .select('*')
                .eq('active', True)
                .order('scheduled_time', desc=False)
                .execute()
            )
        except Exception as e:
            raise AdapterFailure(f"Failed to list triggers: {e}") from e

        return self._rows_to_notifications(result.data or [])

    async def collect_due(self, now: datetime) -> List[ScheduledNotification]:
        client = self._require_client()

        try:
            result = (
                client
                .table(self.table)
                .select('*')
                .eq('active', True)
                .lte('scheduled_time', now.isoformat())
                .execute()
            )
        except Exception as e:
            raise AdapterFailure(f"Failed to fetch due triggers: {e}") from e

        due = self._rows_to_notifications(result.data or [])
        for notification in due:
            if isinstance(notification.trigger, RepeatingTrigger):
                update = {"scheduled_time": next_fire_at(notification.trigger, now).isoformat()}
            else:
                update = {"active": False}
            try:
                client.table(self.table).update(update).eq('id', notification.identifier).execute()
            except Exception as e:
                logger.error(f"Failed to advance trigger {notification.identifier}: {e}")
        return due

    def _rows_to_notifications(self, rows: List[Dict[str, Any]]) -> List[ScheduledNotification]:
        notifications = []
        for row in rows:
            try:
                notifications.append(ScheduledNotification(
                    identifier=str(row['id']),
                    content=NotificationContent(
                        title=row.get('title') or "",
                        body=row.get('body') or "",
                        data=row.get('data') or {},
                    ),
                    trigger=row['trigger'],
                    next_fire_at=row.get('scheduled_time'),
                ))
            except (KeyError, ValidationError) as e:
                logger.warning(f"Skipping malformed trigger row {row.get('id')}: {e}")
        return notifications
