"""
Tests for triage subsystem configuration.
"""

from __future__ import annotations

import math

from ari_triage.core.config import TriageSettings
from ari_triage.triage.config import (
    DecayConfig,
    DeliveryBudgetConfig,
    GroupingConfig,
    QuietHoursConfig,
    ScoringWindowsConfig,
    TriageConfig,
)
from ari_triage.triage.models import DecayProfile, PriorityLevel


class TestTriageConfigDefaults:
    """Tests for default values."""

    def test_defaults_are_valid(self, triage_config):
        assert triage_config.validate() == []

    def test_default_values(self, triage_config):
        assert triage_config.quiet_hours.start_hour == 21.0
        assert triage_config.quiet_hours.end_hour == 6.5
        assert triage_config.budget.max_daily_pushes == 5
        assert triage_config.budget.min_daily_pushes == 2
        assert triage_config.dedup.window_minutes == 15.0
        assert triage_config.dedup.sweep_interval_minutes == 30.0
        assert triage_config.windows.deep_work == (21.0, 22.0)

    def test_default_half_lives(self):
        decay = DecayConfig()
        assert decay.half_life_seconds(DecayProfile.PERISHABLE) == 30 * 60
        assert decay.half_life_seconds(DecayProfile.SHORT) == 4 * 3600
        assert decay.half_life_seconds(DecayProfile.DAY) == 24 * 3600
        assert decay.half_life_seconds(DecayProfile.PERSISTENT) == 7 * 24 * 3600

    def test_default_auto_resolve(self):
        timeouts = GroupingConfig().auto_resolve_minutes
        assert math.isinf(timeouts[PriorityLevel.P0])
        assert math.isinf(timeouts[PriorityLevel.P1])
        assert timeouts[PriorityLevel.P2] == 240
        assert timeouts[PriorityLevel.P3] == 720
        assert timeouts[PriorityLevel.P4] == 120


class TestFromDict:
    """Tests for building config from dicts."""

    def test_nested_dict(self):
        config = TriageConfig.from_dict(
            {
                "quiet_hours": {"start_hour": 22, "end_hour": 7, "timezone": "UTC"},
                "budget": {"max_daily_pushes": 3, "min_daily_pushes": 1},
                "dedup": {"window_minutes": 5},
                "windows": {"work": [8, 17]},
                "decay": {"short": 60},
                "grouping": {"auto_resolve_minutes": {"P1": 600, "P4": None}},
            }
        )

        assert config.quiet_hours.start_hour == 22.0
        assert config.quiet_hours.timezone == "UTC"
        assert config.budget.max_daily_pushes == 3
        assert config.dedup.window_minutes == 5.0
        assert config.windows.work == (8, 17)
        assert config.windows.family == (16.0, 21.0)
        assert config.decay.half_life_minutes[DecayProfile.SHORT] == 60.0
        assert config.grouping.auto_resolve_minutes[PriorityLevel.P1] == 600.0
        assert math.isinf(config.grouping.auto_resolve_minutes[PriorityLevel.P4])
        assert config.validate() == []

    def test_empty_dict_gives_defaults(self):
        assert TriageConfig.from_dict(None) == TriageConfig()

    def test_from_settings(self):
        settings = TriageSettings(
            timezone="Europe/Berlin",
            quiet_hours_start=22.0,
            max_daily_pushes=7,
            dedup_window_minutes=10.0,
            group_retention_hours=12.0,
        )
        config = TriageConfig.from_settings(settings)

        assert config.quiet_hours.timezone == "Europe/Berlin"
        assert config.quiet_hours.start_hour == 22.0
        assert config.budget.max_daily_pushes == 7
        assert config.dedup.window_minutes == 10.0
        assert config.grouping.retention_hours == 12.0


class TestValidate:
    """Tests for validation messages."""

    def test_invalid_timezone(self):
        errors = QuietHoursConfig(timezone="Mars/Olympus_Mons").validate()
        assert any("Invalid timezone" in e for e in errors)

    def test_hour_out_of_range(self):
        errors = QuietHoursConfig(start_hour=25).validate()
        assert errors == ["quiet_hours.start_hour must be in [0, 24)"]

    def test_budget_floor_above_cap(self):
        errors = DeliveryBudgetConfig(max_daily_pushes=1, min_daily_pushes=2).validate()
        assert "min_daily_pushes must be <= max_daily_pushes" in errors

    def test_window_may_wrap_midnight(self):
        """A window such as 22:00 to 02:00 is valid, like quiet hours."""
        assert ScoringWindowsConfig(deep_work=(22.0, 2.0)).validate() == []

    def test_window_hour_out_of_range(self):
        errors = ScoringWindowsConfig(work=(9.0, 24.0)).validate()
        assert errors == ["windows.work end must be in [0, 24)"]

    def test_non_positive_half_life(self):
        decay = DecayConfig.from_dict({"day": 0})
        assert decay.validate() == ["decay.day half-life must be positive"]

    def test_aggregate_collects_all_sections(self):
        config = TriageConfig(
            quiet_hours=QuietHoursConfig(end_hour=-1),
            budget=DeliveryBudgetConfig(max_daily_pushes=-1, min_daily_pushes=0),
            grouping=GroupingConfig(min_ready_items=0),
        )
        errors = config.validate()
        assert len(errors) == 4
