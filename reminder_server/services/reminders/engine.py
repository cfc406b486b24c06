"""Reminder scheduling orchestration."""

import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ...logging_config import get_logger
from ...models.reminders import (
    DEFAULT_CATEGORIES,
    PassResult,
    PassStatus,
    ReminderCategory,
    ReminderSettings,
    TriggerRecord,
    TriggerStore,
)
from .category import schedule_category
from .cleanup import cancel_by_label, cancel_tracked, sweep_stale_one_shots
from .dedup import audit_and_trim, dedup_limits
from .errors import AdapterFailure, CategorySchedulingError, PermissionDenied
from .notifier import NotificationScheduler
from .persistence import KeyValueStore, load_trigger_store, save_category_ids, save_signature
from .policy import SchedulingPolicy
from .signature import should_run_full_pass, signature_of

logger = get_logger(__name__)


class ReminderEngine:
    """Turns reminder settings into registered triggers.

    Each invocation sweeps stale one-shots, then either skips (settings unchanged
    and triggers tracked) or rebuilds every category's triggers, and finally caps
    duplicates per label. Invocations on one engine are serialised.
    """

    def __init__(
        self,
        scheduler: NotificationScheduler,
        store: KeyValueStore,
        policy: Optional[SchedulingPolicy] = None,
        categories: Optional[Mapping[str, ReminderCategory]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scheduler = scheduler
        self.store = store
        self.policy = policy or SchedulingPolicy()
        self.categories: Dict[str, ReminderCategory] = dict(categories or DEFAULT_CATEGORIES)
        self._clock = clock or datetime.now
        self._lock = asyncio.Lock()

    async def schedule_reminders(
        self,
        settings: ReminderSettings,
        now: Optional[datetime] = None,
        force: bool = False,
    ) -> PassResult:
        """Bring registered triggers in line with ``settings``.

        ``force`` bypasses the signature gate, used when a bootstrap one-shot was
        delivered and its category needs re-planning. Never raises for adapter
        or permission failures; they are logged and reflected in the result.
        """
        async with self._lock:
            return await self._run_pass(settings, now or self._clock(), force)

    async def cancel_all_reminders(self) -> int:
        """Cancel every tracked and labelled reminder trigger and clear the tracked ids."""
        async with self._lock:
            store = await load_trigger_store(self.store, self.categories)
            canceled = 0
            for category in self.categories.values():
                canceled += await cancel_tracked(self.scheduler, store.ids_for(category.key))
                canceled += await cancel_by_label(self.scheduler, category.label)
                try:
                    await save_category_ids(self.store, category.key, [])
                except AdapterFailure as e:
                    logger.error(f"❌ Failed to clear tracked {category.key} ids: {e}")

            logger.info(f"🔕 Cancelled all reminders ({canceled} cancellation(s))")
            return canceled

    async def _run_pass(self, settings: ReminderSettings, now: datetime, force: bool) -> PassResult:
        swept = await sweep_stale_one_shots(self.scheduler, now)

        if not await self._permission_granted():
            logger.info("🔕 Notification permission not granted")
            return PassResult(status=PassStatus.ABORTED, swept=swept)

        store = await load_trigger_store(self.store, self.categories)
        limits = dedup_limits(settings, self.categories, self.policy)

        if not force and not should_run_full_pass(settings, store, self.categories):
            tracked = [identifier for ids in store.ids.values() for identifier in ids]
            trimmed = await audit_and_trim(self.scheduler, limits, tracked)
            return PassResult(
                status=PassStatus.SKIPPED,
                signature=store.last_signature,
                swept=swept,
                trimmed=trimmed,
            )

        signature = signature_of(settings, self.categories)
        scheduled: Dict[str, List[TriggerRecord]] = {}
        failed: List[str] = []

        try:
            for category in self.categories.values():
                records, ok = await self._reschedule_category(category, settings, store, now)
                scheduled[category.key] = records
                if not ok:
                    failed.append(category.key)
        except PermissionDenied as e:
            # Signature stays stale so the next invocation runs a full pass
            logger.warning(f"🔕 Reminder scheduling aborted: {e}")
            return PassResult(status=PassStatus.ABORTED, scheduled=scheduled, swept=swept)

        if failed:
            logger.warning(f"⚠️ Reminder categories failed ({', '.join(failed)}), keeping previous signature")
        else:
            try:
                await save_signature(self.store, signature)
            except AdapterFailure as e:
                logger.error(f"❌ Failed to persist reminder signature: {e}")

        tracked = [record.id for records in scheduled.values() for record in records]
        trimmed = await audit_and_trim(self.scheduler, limits, tracked)
        return PassResult(
            status=PassStatus.FULL,
            signature=signature,
            scheduled=scheduled,
            failed_categories=failed,
            swept=swept,
            trimmed=trimmed,
        )

    async def _reschedule_category(
        self,
        category: ReminderCategory,
        settings: ReminderSettings,
        store: TriggerStore,
        now: datetime,
    ) -> Tuple[List[TriggerRecord], bool]:
        """Replace a category's triggers. Returns the new records and whether everything succeeded."""
        await cancel_tracked(self.scheduler, store.ids_for(category.key))
        # Orphans left by earlier passes or app versions
        await cancel_by_label(self.scheduler, category.label)

        records: List[TriggerRecord] = []
        ok = True

        if settings.is_schedulable(category.key):
            preference = settings.preference_for(category.key)
            custom_days = ",".join(weekday.value for weekday in preference.custom_schedule)
            logger.info(
                f"🗓️ Scheduling {category.key} reminders: freq={preference.frequency.value}, "
                f"time={preference.time}, customDays={custom_days}"
            )
            try:
                records = await schedule_category(self.scheduler, category, preference, now, self.policy)
            except PermissionDenied:
                raise
            except CategorySchedulingError as e:
                logger.error(f"❌ Failed to schedule {category.key} reminders: {e}")
                records, ok = e.records, False
            except Exception as e:
                logger.exception(f"❌ Unexpected error scheduling {category.key} reminders: {e}")
                ok = False
        else:
            logger.info(f"🔕 {category.label} disabled, no triggers scheduled")

        try:
            await save_category_ids(self.store, category.key, [record.id for record in records])
        except AdapterFailure as e:
            logger.error(f"❌ Failed to persist {category.key} trigger ids: {e}")
            ok = False

        return records, ok

    async def _permission_granted(self) -> bool:
        try:
            return await self.scheduler.ensure_permissions()
        except AdapterFailure as e:
            logger.error(f"❌ Permission check failed: {e}")
            return False
