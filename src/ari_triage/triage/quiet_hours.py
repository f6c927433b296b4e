"""
Quiet Hours Checker.

Timezone-aware quiet hours checking using zoneinfo for DST handling.
Bounds are fractional local hours; the start is inclusive and the end
exclusive, so 21.0-6.5 covers 21:00:00 up to but not including 06:30:00.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.logging import get_logger

if TYPE_CHECKING:
    from .config import QuietHoursConfig

logger = get_logger(__name__)


def resolve_timezone(name: str) -> ZoneInfo:
    """Load a zoneinfo timezone, falling back to UTC if it's unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s', falling back to UTC", name)
        return ZoneInfo("UTC")


def to_local(now: datetime | None, tz: ZoneInfo) -> datetime:
    """
    Convert a reference time into the recipient's local time.

    Naive datetimes are interpreted as already local.
    """
    if now is None:
        return datetime.now(tz=tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def fractional_hour(local: datetime) -> float:
    """Local time of day as a fractional hour (06:30 -> 6.5)."""
    return local.hour + local.minute / 60 + local.second / 3600


def in_window(hour: float, start: float, end: float) -> bool:
    """Check whether a fractional hour falls in [start, end), wrapping midnight."""
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


@dataclass
class QuietHoursChecker:
    """
    Checks if a time falls within quiet hours.

    Uses zoneinfo for proper DST handling: the wall-clock hour in the
    configured timezone decides, whatever the offset on that date.
    """

    config: QuietHoursConfig

    def __post_init__(self) -> None:
        self._timezone = resolve_timezone(self.config.timezone)

    @property
    def timezone(self) -> ZoneInfo:
        return self._timezone

    def local_time(self, now: datetime | None = None) -> datetime:
        """Reference time in the configured timezone."""
        return to_local(now, self._timezone)

    def is_quiet_time(self, now: datetime | None = None) -> bool:
        """
        Check if the given time is within quiet hours.

        Args:
            now: Time to check (defaults to current time)

        Returns:
            True if within quiet hours, False otherwise
        """
        if not self.config.enabled:
            return False

        hour = fractional_hour(self.local_time(now))
        return in_window(hour, self.config.start_hour, self.config.end_hour)

    def next_active_time(self, now: datetime | None = None) -> datetime | None:
        """
        Get the next time when pushes will be active.

        Args:
            now: Reference time (defaults to current time)

        Returns:
            Datetime when quiet hours end, or None if not in quiet period
        """
        if not self.is_quiet_time(now):
            return None

        local = self.local_time(now)
        total_minutes = round(self.config.end_hour * 60)
        end_dt = local.replace(
            hour=total_minutes // 60,
            minute=total_minutes % 60,
            second=0,
            microsecond=0,
        )

        # If end time is before current time, it's tomorrow
        if end_dt <= local:
            end_dt = end_dt + timedelta(days=1)

        return end_dt
