"""
Notification Router.

Maps a priority level to a delivery channel, honoring quiet hours and a
daily push budget. Decision table, evaluated in order:

1. P0 -> critical channel (bypasses quiet hours and the cap)
2. P4 -> log only
3. Quiet hours: P1 -> batch (held until quiet hours end), P2/P3 -> log only
4. Daily pushes at the cap -> batch
5. P1/P2 -> push
6. P3 -> batch
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ..core.logging import get_logger
from .config import DeliveryBudgetConfig
from .models import Channel, PriorityLevel
from .quiet_hours import QuietHoursChecker

logger = get_logger(__name__)


@dataclass
class RouteDecision:
    """Where a notification goes and why."""

    channel: Channel
    reason: str
    quiet_hours: bool = False
    deliver_after: datetime | None = None  # End of quiet hours for deferred items

    @property
    def is_immediate(self) -> bool:
        return self.channel in (Channel.CRITICAL, Channel.PUSH)


@dataclass
class DailyPushCounter:
    """
    Pushes delivered on the current local date.

    Resets lazily: the first ``roll`` on a new date zeroes the count.
    """

    count: int = 0
    day: date | None = None

    def roll(self, today: date) -> None:
        if self.day != today:
            if self.day is not None:
                logger.debug("Daily push counter reset (%d pushes on %s)", self.count, self.day)
            self.day = today
            self.count = 0

    def increment(self, today: date) -> int:
        self.roll(today)
        self.count += 1
        return self.count


class Router:
    """
    Channel decision for scored notifications.

    Owns the daily push counter; callers serialize access (the pipeline
    does so under its lock).

    Usage:
        router = Router(QuietHoursChecker(config.quiet_hours), config.budget)
        decision = router.route(PriorityLevel.P2, now)
        if decision.channel is Channel.PUSH and delivered:
            router.record_push(now)
    """

    def __init__(
        self,
        quiet_hours: QuietHoursChecker,
        budget: DeliveryBudgetConfig | None = None,
    ) -> None:
        self.quiet_hours = quiet_hours
        self.budget = budget or DeliveryBudgetConfig()
        self.counter = DailyPushCounter()

    def _today(self, now: datetime | None) -> date:
        return self.quiet_hours.local_time(now).date()

    def route(self, priority: PriorityLevel, now: datetime | None = None) -> RouteDecision:
        """
        Decide the channel for a priority level.

        Args:
            priority: Priority from the scorer
            now: Reference time (defaults to current time)

        Returns:
            RouteDecision with channel and reason
        """
        self.counter.roll(self._today(now))

        if priority is PriorityLevel.P0:
            return RouteDecision(Channel.CRITICAL, "P0 critical: immediate delivery")

        if priority is PriorityLevel.P4:
            return RouteDecision(Channel.LOG, "P4 log-only")

        if self.quiet_hours.is_quiet_time(now):
            if priority is PriorityLevel.P1:
                return RouteDecision(
                    Channel.BATCH,
                    "P1 during quiet hours: batched for next digest",
                    quiet_hours=True,
                    deliver_after=self.quiet_hours.next_active_time(now),
                )
            return RouteDecision(
                Channel.LOG, f"{priority.value} during quiet hours: log-only", True
            )

        if self.counter.count >= self.budget.max_daily_pushes:
            return RouteDecision(
                Channel.BATCH,
                f"daily push cap reached ({self.counter.count}/{self.budget.max_daily_pushes}): "
                "batched for next digest",
            )

        if priority in (PriorityLevel.P1, PriorityLevel.P2):
            return RouteDecision(
                Channel.PUSH,
                f"{priority.value} push ({self.counter.count + 1}/{self.budget.max_daily_pushes})",
            )

        return RouteDecision(Channel.BATCH, "P3 batched for next digest")

    def record_push(self, now: datetime | None = None) -> int:
        """
        Count a successfully delivered push.

        Returns:
            Pushes delivered today
        """
        return self.counter.increment(self._today(now))

    def pushes_today(self, now: datetime | None = None) -> int:
        self.counter.roll(self._today(now))
        return self.counter.count

    def stats(self, now: datetime | None = None) -> dict[str, Any]:
        """Push budget usage for the current local date."""
        pushed = self.pushes_today(now)
        return {
            "date": self.counter.day.isoformat() if self.counter.day else None,
            "pushed": pushed,
            "max": self.budget.max_daily_pushes,
            "min": self.budget.min_daily_pushes,
            "remaining": max(0, self.budget.max_daily_pushes - pushed),
        }
