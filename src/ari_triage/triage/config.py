"""
Triage Configuration.

Configuration models for quiet hours, the daily push budget, dedup,
time-of-day scoring windows, decay half-lives and grouping timeouts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import DecayProfile, PriorityLevel

if TYPE_CHECKING:
    from ..core.config import TriageSettings

DEFAULT_TIMEZONE = "America/Indiana/Indianapolis"

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_HALF_LIFE_MINUTES: dict[DecayProfile, float] = {
    DecayProfile.PERISHABLE: 30,
    DecayProfile.SHORT: 4 * 60,
    DecayProfile.DAY: 24 * 60,
    DecayProfile.PERSISTENT: 7 * 24 * 60,
}

# P0/P1 require explicit acknowledgment; noise (P4) clears fastest
DEFAULT_AUTO_RESOLVE_MINUTES: dict[PriorityLevel, float] = {
    PriorityLevel.P0: math.inf,
    PriorityLevel.P1: math.inf,
    PriorityLevel.P2: 4 * 60,
    PriorityLevel.P3: 12 * 60,
    PriorityLevel.P4: 2 * 60,
}


def _hour_errors(name: str, value: float) -> list[str]:
    if not 0 <= value < 24:
        return [f"{name} must be in [0, 24)"]
    return []


def _window_errors(name: str, window: tuple[float, float]) -> list[str]:
    # start > end wraps past midnight; start == end is an empty window
    start, end = window
    return _hour_errors(f"{name} start", start) + _hour_errors(f"{name} end", end)


# =============================================================================
# Quiet Hours
# =============================================================================


@dataclass
class QuietHoursConfig:
    """
    Quiet hours configuration for suppressing pushes.

    Hours are fractional local hours (6.5 = 06:30) in a zoneinfo timezone.
    """

    enabled: bool = True
    start_hour: float = 21.0
    end_hour: float = 6.5
    timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> QuietHoursConfig:
        """Create from configuration dict."""
        if not data:
            return cls()
        return cls(
            enabled=data.get("enabled", True),
            start_hour=float(data.get("start_hour", 21.0)),
            end_hour=float(data.get("end_hour", 6.5)),
            timezone=data.get("timezone", DEFAULT_TIMEZONE),
        )

    def validate(self) -> list[str]:
        """
        Validate quiet hours configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = _hour_errors("quiet_hours.start_hour", self.start_hour)
        errors += _hour_errors("quiet_hours.end_hour", self.end_hour)
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Invalid timezone: '{self.timezone}'")
        return errors


# =============================================================================
# Delivery Budget
# =============================================================================


@dataclass
class DeliveryBudgetConfig:
    """Daily push budget. Excess demand degrades to batching."""

    max_daily_pushes: int = 5
    min_daily_pushes: int = 2

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DeliveryBudgetConfig:
        """Create from configuration dict."""
        if not data:
            return cls()
        return cls(
            max_daily_pushes=int(data.get("max_daily_pushes", 5)),
            min_daily_pushes=int(data.get("min_daily_pushes", 2)),
        )

    def validate(self) -> list[str]:
        """Validate push budget."""
        errors = []
        if self.max_daily_pushes < 0:
            errors.append("max_daily_pushes must be non-negative")
        if self.min_daily_pushes < 0:
            errors.append("min_daily_pushes must be non-negative")
        if self.min_daily_pushes > self.max_daily_pushes:
            errors.append("min_daily_pushes must be <= max_daily_pushes")
        return errors


# =============================================================================
# Dedup
# =============================================================================


@dataclass
class DedupConfig:
    """Duplicate suppression window and background sweep cadence."""

    window_minutes: float = 15.0
    sweep_interval_minutes: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DedupConfig:
        """Create from configuration dict."""
        if not data:
            return cls()
        return cls(
            window_minutes=float(data.get("window_minutes", 15.0)),
            sweep_interval_minutes=float(data.get("sweep_interval_minutes", 30.0)),
        )

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60

    def validate(self) -> list[str]:
        """Validate dedup settings."""
        errors = []
        if self.window_minutes <= 0:
            errors.append("dedup.window_minutes must be positive")
        if self.sweep_interval_minutes <= 0:
            errors.append("dedup.sweep_interval_minutes must be positive")
        return errors


# =============================================================================
# Scoring Windows
# =============================================================================


@dataclass
class ScoringWindowsConfig:
    """
    Local-time windows that shape the context modifier.

    Each window is a (start_hour, end_hour) pair, start inclusive, end exclusive.
    """

    family: tuple[float, float] = (16.0, 21.0)  # -0.3 base modifier
    work: tuple[float, float] = (9.0, 16.0)  # +0.1 base modifier
    deep_work: tuple[float, float] = (21.0, 22.0)  # -0.15 for non-urgent categories

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScoringWindowsConfig:
        """Create from configuration dict of [start, end] pairs."""
        if not data:
            return cls()
        defaults = cls()
        return cls(
            family=tuple(data.get("family", defaults.family)),
            work=tuple(data.get("work", defaults.work)),
            deep_work=tuple(data.get("deep_work", defaults.deep_work)),
        )

    def validate(self) -> list[str]:
        """Validate window bounds."""
        errors = []
        for name in ("family", "work", "deep_work"):
            window = getattr(self, name)
            if len(window) != 2:
                errors.append(f"windows.{name} must be a [start, end] pair")
                continue
            errors += _window_errors(f"windows.{name}", window)
        return errors


# =============================================================================
# Decay and Grouping
# =============================================================================


@dataclass
class DecayConfig:
    """Half-life per decay profile, in minutes."""

    half_life_minutes: dict[DecayProfile, float] = field(
        default_factory=lambda: dict(DEFAULT_HALF_LIFE_MINUTES)
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DecayConfig:
        """Create from a mapping of profile name -> minutes."""
        half_lives = dict(DEFAULT_HALF_LIFE_MINUTES)
        for name, minutes in (data or {}).items():
            half_lives[DecayProfile(name)] = float(minutes)
        return cls(half_life_minutes=half_lives)

    def half_life_seconds(self, profile: DecayProfile) -> float:
        return self.half_life_minutes[profile] * 60

    def validate(self) -> list[str]:
        """Half-lives must be positive."""
        return [
            f"decay.{profile.value} half-life must be positive"
            for profile, minutes in self.half_life_minutes.items()
            if minutes <= 0
        ]


@dataclass
class GroupingConfig:
    """Grouper retention, readiness threshold and per-level auto-resolve timeouts."""

    retention_hours: float = 24.0
    min_ready_items: int = 2
    auto_resolve_minutes: dict[PriorityLevel, float] = field(
        default_factory=lambda: dict(DEFAULT_AUTO_RESOLVE_MINUTES)
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GroupingConfig:
        """Create from configuration dict. ``None`` timeouts mean never."""
        if not data:
            return cls()
        timeouts = dict(DEFAULT_AUTO_RESOLVE_MINUTES)
        for level, minutes in (data.get("auto_resolve_minutes") or {}).items():
            timeouts[PriorityLevel(level)] = math.inf if minutes is None else float(minutes)
        return cls(
            retention_hours=float(data.get("retention_hours", 24.0)),
            min_ready_items=int(data.get("min_ready_items", 2)),
            auto_resolve_minutes=timeouts,
        )

    def validate(self) -> list[str]:
        """Validate grouping settings."""
        errors = []
        if self.retention_hours <= 0:
            errors.append("grouping.retention_hours must be positive")
        if self.min_ready_items < 1:
            errors.append("grouping.min_ready_items must be >= 1")
        for level, minutes in self.auto_resolve_minutes.items():
            if minutes <= 0:
                errors.append(f"grouping.auto_resolve_minutes.{level.value} must be positive")
        return errors


# =============================================================================
# Aggregate
# =============================================================================


@dataclass
class TriageConfig:
    """Complete configuration for one triage pipeline."""

    quiet_hours: QuietHoursConfig = field(default_factory=QuietHoursConfig)
    budget: DeliveryBudgetConfig = field(default_factory=DeliveryBudgetConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    windows: ScoringWindowsConfig = field(default_factory=ScoringWindowsConfig)
    decay: DecayConfig = field(default_factory=DecayConfig)
    grouping: GroupingConfig = field(default_factory=GroupingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TriageConfig:
        """Create from a nested configuration dict."""
        data = data or {}
        return cls(
            quiet_hours=QuietHoursConfig.from_dict(data.get("quiet_hours")),
            budget=DeliveryBudgetConfig.from_dict(data.get("budget")),
            dedup=DedupConfig.from_dict(data.get("dedup")),
            windows=ScoringWindowsConfig.from_dict(data.get("windows")),
            decay=DecayConfig.from_dict(data.get("decay")),
            grouping=GroupingConfig.from_dict(data.get("grouping")),
        )

    @classmethod
    def from_settings(cls, settings: TriageSettings) -> TriageConfig:
        """Build from environment-backed settings."""
        return cls(
            quiet_hours=QuietHoursConfig(
                enabled=settings.quiet_hours_enabled,
                start_hour=settings.quiet_hours_start,
                end_hour=settings.quiet_hours_end,
                timezone=settings.timezone,
            ),
            budget=DeliveryBudgetConfig(
                max_daily_pushes=settings.max_daily_pushes,
                min_daily_pushes=settings.min_daily_pushes,
            ),
            dedup=DedupConfig(
                window_minutes=settings.dedup_window_minutes,
                sweep_interval_minutes=settings.cleanup_interval_minutes,
            ),
            grouping=GroupingConfig(retention_hours=settings.group_retention_hours),
        )

    def validate(self) -> list[str]:
        """
        Validate every section.

        Returns:
            List of validation error messages (empty if valid)
        """
        return (
            self.quiet_hours.validate()
            + self.budget.validate()
            + self.dedup.validate()
            + self.windows.validate()
            + self.decay.validate()
            + self.grouping.validate()
        )
