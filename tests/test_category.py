"""Tests for per-category trigger planning and registration."""

from datetime import datetime, timedelta

import pytest

from reminder_server.models.reminders import (
    DEFAULT_CATEGORIES,
    OneShotTrigger,
    ReminderPreference,
    RepeatingTrigger,
    TriggerKind,
    Weekday,
)
from reminder_server.services.reminders.category import (
    WindowClass,
    classify,
    plan_category,
    schedule_category,
)
from reminder_server.services.reminders.errors import (
    AdapterFailure,
    CategorySchedulingError,
    PermissionDenied,
)
from reminder_server.services.reminders.notifier import InMemoryNotificationScheduler
from reminder_server.services.reminders.policy import SchedulingPolicy

from conftest import NOW, custom, daily, hhmm

POLICY = SchedulingPolicy(timezone="Europe/Berlin")


def preference(fields) -> ReminderPreference:
    return ReminderPreference(enabled=True, **fields)


class TestClassify:
    """Tests for window classification."""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (-3600, WindowClass.PAST),
            (-1, WindowClass.PAST),
            (0, WindowClass.NEAR),
            (120, WindowClass.NEAR),
            (300, WindowClass.NEAR),
            (301, WindowClass.FUTURE),
        ],
    )
    def test_boundaries(self, delta, expected):
        """Test the past/near/future thresholds."""
        assert classify(delta) is expected

    def test_custom_window(self):
        """Test the near window is configurable."""
        assert classify(400, near_window_seconds=600) is WindowClass.NEAR


class TestDailyPlanning:
    """Tests for Daily mode."""

    def test_future_time_is_repeating(self):
        """Test a time 30 minutes ahead yields one repeating daily trigger."""
        target = NOW + timedelta(minutes=30)
        planned = plan_category(preference(daily(hhmm(target))), NOW, POLICY)

        assert len(planned) == 1
        trigger = planned[0].trigger
        assert isinstance(trigger, RepeatingTrigger)
        assert (trigger.hour, trigger.minute) == (target.hour, target.minute)
        assert trigger.weekday is None
        assert trigger.timezone == "Europe/Berlin"
        assert planned[0].is_bootstrap is False

    def test_past_time_bootstraps_tomorrow(self):
        """Test a time an hour ago yields one one-shot tomorrow."""
        planned = plan_category(preference(daily(hhmm(NOW - timedelta(hours=1)))), NOW, POLICY)

        assert len(planned) == 1
        assert planned[0].kind is TriggerKind.ONE_SHOT
        assert planned[0].is_bootstrap is True
        assert planned[0].trigger.at == datetime(2026, 10, 20, 11, 0)

    def test_near_time_bootstraps_today(self):
        """Test a time two minutes ahead yields one one-shot today."""
        planned = plan_category(preference(daily(hhmm(NOW + timedelta(minutes=2)))), NOW, POLICY)

        assert len(planned) == 1
        assert planned[0].is_bootstrap is True
        assert planned[0].trigger.at == datetime(2026, 10, 19, 12, 2)

    def test_imminent_fire_is_nudged(self):
        """Test a fire time under three seconds away moves forward two seconds."""
        now = datetime(2026, 10, 19, 11, 59, 58, 500000)
        planned = plan_category(preference(daily("12:00")), now, POLICY)

        assert planned[0].trigger.at == datetime(2026, 10, 19, 12, 0, 2)

    def test_fire_exactly_now_is_nudged(self):
        """Test a zero delta is near and nudged."""
        planned = plan_category(preference(daily("12:00")), NOW, POLICY)

        assert planned[0].trigger.at == NOW + timedelta(seconds=2)

    def test_malformed_time_falls_back(self):
        """Test an unparsable time uses the default time."""
        planned = plan_category(preference(daily("whenever")), NOW, POLICY)

        # 09:00 already passed at noon
        assert planned[0].trigger.at == datetime(2026, 10, 20, 9, 0)


class TestCustomPlanning:
    """Tests for Custom mode on a Monday at noon."""

    def test_today_past_emits_nothing(self):
        """Test today's entry five minutes ago yields no trigger at all."""
        planned = plan_category(preference(custom({"mon": hhmm(NOW - timedelta(minutes=5))})), NOW, POLICY)
        assert planned == []

    def test_today_near_bootstraps_only(self):
        """Test today's entry inside the window yields only a one-shot."""
        planned = plan_category(preference(custom({"mon": "12:03"})), NOW, POLICY)

        assert len(planned) == 1
        assert isinstance(planned[0].trigger, OneShotTrigger)
        assert planned[0].weekday is Weekday.MON
        assert planned[0].trigger.at == datetime(2026, 10, 19, 12, 3)

    def test_today_future_is_weekly(self):
        """Test today's entry beyond the window yields a weekly trigger."""
        planned = plan_category(preference(custom({"mon": "18:00"})), NOW, POLICY)

        assert len(planned) == 1
        assert planned[0].trigger == RepeatingTrigger(hour=18, minute=0, weekday=2, timezone="Europe/Berlin")

    def test_other_days_are_weekly(self):
        """Test other weekdays always yield weekly triggers, even at past clock times."""
        planned = plan_category(preference(custom({"wed": "08:00", "sun": "11:00"})), NOW, POLICY)

        weekdays = sorted(p.trigger.weekday for p in planned)
        assert weekdays == [1, 4]
        assert all(p.kind is TriggerKind.REPEATING for p in planned)

    def test_empty_times_are_skipped(self):
        """Test sparse schedule entries are ignored."""
        planned = plan_category(preference(custom({"tue": None, "thu": "", "fri": "07:30"})), NOW, POLICY)

        assert [p.weekday for p in planned] == [Weekday.FRI]

    def test_mixed_schedule(self):
        """Test today's skip does not affect other weekdays."""
        planned = plan_category(
            preference(custom({"mon": "11:00", "tue": "11:00", "sat": "20:15"})),
            NOW,
            POLICY,
        )

        assert sorted(p.weekday.value for p in planned) == ["sat", "tue"]


class FailingScheduler(InMemoryNotificationScheduler):
    """Fails after a number of successful registrations."""

    def __init__(self, succeed: int, error: Exception, **kwargs):
        super().__init__(**kwargs)
        self.succeed = succeed
        self.error = error

    async def schedule(self, content, trigger):
        if self.schedule_calls >= self.succeed:
            raise self.error
        return await super().schedule(content, trigger)


class TestScheduleCategory:
    """Tests for registering planned triggers."""

    @pytest.mark.asyncio
    async def test_records_and_content(self, scheduler):
        """Test registered triggers carry the category label, body and payload."""
        category = DEFAULT_CATEGORIES["journal"]
        records = await schedule_category(
            scheduler,
            category,
            preference(custom({"tue": "20:00", "mon": "12:02"})),
            NOW,
            POLICY,
        )

        assert len(records) == 2
        live = {n.identifier: n for n in await scheduler.list_all()}
        assert set(live) == {r.id for r in records}

        for record in records:
            notification = live[record.id]
            assert notification.content.title == "Journaling reminder"
            assert notification.content.body == "Take a moment to jot your thoughts."
            assert notification.content.data["type"] == "journaling"
            assert notification.content.data["weekday"] == record.weekday.value
            assert notification.content.data["bootstrap"] is record.is_bootstrap

        bootstrap = next(r for r in records if r.is_bootstrap)
        assert bootstrap.fire_timestamp == datetime(2026, 10, 19, 12, 2)

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_registered_records(self, clock):
        """Test a failure mid-category reports what was already registered."""
        scheduler = FailingScheduler(succeed=1, error=AdapterFailure("disk full"), clock=clock)

        with pytest.raises(CategorySchedulingError) as excinfo:
            await schedule_category(
                scheduler,
                DEFAULT_CATEGORIES["mood"],
                preference(custom({"tue": "08:00", "wed": "08:00"})),
                NOW,
                POLICY,
            )

        assert excinfo.value.category == "mood"
        assert len(excinfo.value.records) == 1

    @pytest.mark.asyncio
    async def test_permission_denied_propagates(self, clock):
        """Test permission failures are not wrapped."""
        scheduler = FailingScheduler(succeed=0, error=PermissionDenied("denied"), clock=clock)

        with pytest.raises(PermissionDenied):
            await schedule_category(
                scheduler,
                DEFAULT_CATEGORIES["mood"],
                preference(daily("18:00")),
                NOW,
                POLICY,
            )
