"""
Tests for the notification router.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from ari_triage.triage.config import DeliveryBudgetConfig, QuietHoursConfig
from ari_triage.triage.models import Channel, PriorityLevel
from ari_triage.triage.quiet_hours import QuietHoursChecker
from ari_triage.triage.router import DailyPushCounter, Router

from tests.factories import NOW, QUIET_NIGHT, TZ, hours

P0, P1, P2, P3, P4 = (
    PriorityLevel.P0,
    PriorityLevel.P1,
    PriorityLevel.P2,
    PriorityLevel.P3,
    PriorityLevel.P4,
)


@pytest.fixture
def router():
    return Router(QuietHoursChecker(QuietHoursConfig()), DeliveryBudgetConfig())


def exhaust(router: Router, count: int = 5) -> None:
    for _ in range(count):
        router.record_push(NOW)


class TestActiveHours:
    """Decision table outside quiet hours with budget left."""

    @pytest.mark.parametrize(
        ("priority", "channel"),
        [
            (P0, Channel.CRITICAL),
            (P1, Channel.PUSH),
            (P2, Channel.PUSH),
            (P3, Channel.BATCH),
            (P4, Channel.LOG),
        ],
    )
    def test_channels(self, router, priority, channel):
        assert router.route(priority, NOW).channel is channel

    def test_push_reason_shows_budget(self, router):
        router.record_push(NOW)
        assert router.route(P2, NOW).reason == "P2 push (2/5)"

    def test_routing_does_not_count(self, router):
        router.route(P2, NOW)
        router.route(P1, NOW)
        assert router.pushes_today(NOW) == 0


class TestQuietHours:
    """Quiet hours suppress everything but P0."""

    def test_p0_bypasses(self, router):
        decision = router.route(P0, QUIET_NIGHT)
        assert decision.channel is Channel.CRITICAL
        assert decision.is_immediate is True

    def test_p1_is_batched(self, router):
        decision = router.route(P1, QUIET_NIGHT)
        assert decision.channel is Channel.BATCH
        assert decision.quiet_hours is True

    def test_p1_is_held_until_quiet_hours_end(self, router):
        decision = router.route(P1, QUIET_NIGHT)
        assert decision.deliver_after == datetime(2024, 1, 18, 6, 30, tzinfo=TZ)

    def test_active_hours_have_no_hold(self, router):
        assert router.route(P3, NOW).deliver_after is None

    @pytest.mark.parametrize("priority", [P2, P3, P4])
    def test_lower_levels_are_logged(self, router, priority):
        assert router.route(priority, QUIET_NIGHT).channel is Channel.LOG

    def test_disabled_quiet_hours(self):
        router = Router(QuietHoursChecker(QuietHoursConfig(enabled=False)))
        assert router.route(P2, QUIET_NIGHT).channel is Channel.PUSH


class TestDailyCap:
    """Push budget degrades to batch."""

    def test_cap_batches_p1_and_p2(self, router):
        exhaust(router)

        for priority in (P1, P2):
            decision = router.route(priority, NOW)
            assert decision.channel is Channel.BATCH
            assert "cap" in decision.reason

    def test_cap_does_not_affect_p0(self, router):
        exhaust(router)
        assert router.route(P0, NOW).channel is Channel.CRITICAL

    def test_cap_of_zero(self):
        router = Router(
            QuietHoursChecker(QuietHoursConfig()),
            DeliveryBudgetConfig(max_daily_pushes=0, min_daily_pushes=0),
        )
        assert router.route(P2, NOW).channel is Channel.BATCH

    def test_counter_resets_on_new_local_date(self, router):
        exhaust(router)
        tomorrow = NOW + hours(24)

        assert router.route(P2, tomorrow).channel is Channel.PUSH
        assert router.pushes_today(tomorrow) == 0

    def test_stats(self, router):
        router.record_push(NOW)
        router.record_push(NOW)

        stats = router.stats(NOW)
        assert stats == {
            "date": "2024-01-17",
            "pushed": 2,
            "max": 5,
            "min": 2,
            "remaining": 3,
        }


class TestDailyPushCounter:
    """Tests for DailyPushCounter."""

    def test_roll_resets(self):
        counter = DailyPushCounter()
        counter.increment(date(2024, 1, 17))
        counter.increment(date(2024, 1, 17))
        assert counter.count == 2

        counter.roll(date(2024, 1, 18))
        assert counter.count == 0
        assert counter.day == date(2024, 1, 18)

    def test_same_day_roll_keeps_count(self):
        counter = DailyPushCounter()
        counter.increment(date(2024, 1, 17))
        counter.roll(date(2024, 1, 17))
        assert counter.count == 1
