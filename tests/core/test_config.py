"""
Tests for centralized configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest
from pydantic import ValidationError

from ari_triage.core.config import (
    TriageSettings,
    get_settings,
    reset_settings,
)


class TestTriageSettings:
    """Test TriageSettings class."""

    def test_default_values(self):
        """Defaults match the documented recipient schedule and budget."""
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = TriageSettings()

            assert settings.log_level == "WARNING"
            assert settings.debug is False
            assert settings.log_json is False
            assert settings.timezone == "America/Indiana/Indianapolis"
            assert settings.quiet_hours_enabled is True
            assert settings.quiet_hours_start == 21.0
            assert settings.quiet_hours_end == 6.5
            assert settings.max_daily_pushes == 5
            assert settings.min_daily_pushes == 2
            assert settings.dedup_window_minutes == 15.0
            assert settings.cleanup_interval_minutes == 30.0
            assert settings.group_retention_hours == 24.0
            assert settings.policy_file is None
            assert settings.engagement_file is None

    def test_env_override(self):
        """ARI_ environment variables override defaults."""
        env = {
            "ARI_TIMEZONE": "Europe/London",
            "ARI_MAX_DAILY_PUSHES": "8",
            "ARI_QUIET_HOURS_START": "22.5",
            "ARI_QUIET_HOURS_ENABLED": "false",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = TriageSettings()

            assert settings.timezone == "Europe/London"
            assert settings.max_daily_pushes == 8
            assert settings.quiet_hours_start == 22.5
            assert settings.quiet_hours_enabled is False

    def test_log_level_case_insensitive(self):
        """Log level is normalized to uppercase."""
        with mock.patch.dict(os.environ, {"ARI_LOG_LEVEL": "debug"}, clear=True):
            assert TriageSettings().log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with mock.patch.dict(os.environ, {"ARI_LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(ValidationError):
                TriageSettings()

    def test_quiet_hour_out_of_range(self):
        """Quiet hour bounds must be within a day."""
        with mock.patch.dict(os.environ, {"ARI_QUIET_HOURS_END": "24"}, clear=True):
            with pytest.raises(ValidationError):
                TriageSettings()

    def test_push_floor_above_cap(self):
        """min_daily_pushes may not exceed max_daily_pushes."""
        env = {"ARI_MAX_DAILY_PUSHES": "1", "ARI_MIN_DAILY_PUSHES": "3"}
        with mock.patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValidationError):
                TriageSettings()

    def test_dedup_window_must_be_positive(self):
        with mock.patch.dict(os.environ, {"ARI_DEDUP_WINDOW_MINUTES": "0"}, clear=True):
            with pytest.raises(ValidationError):
                TriageSettings()


class TestComputedProperties:
    """Test derived settings."""

    def test_legacy_debug_enables_debug_level(self):
        """ARI_DEBUG raises the default level to DEBUG."""
        with mock.patch.dict(os.environ, {"ARI_DEBUG": "1"}, clear=True):
            settings = TriageSettings()
            assert settings.effective_log_level == "DEBUG"

    def test_explicit_level_wins_over_debug(self):
        env = {"ARI_DEBUG": "1", "ARI_LOG_LEVEL": "ERROR"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert TriageSettings().effective_log_level == "ERROR"

    def test_log_level_int(self):
        import logging

        with mock.patch.dict(os.environ, {"ARI_LOG_LEVEL": "INFO"}, clear=True):
            assert TriageSettings().log_level_int == logging.INFO

    def test_engagement_path_default(self, tmp_path):
        """Engagement state defaults to the instance cache directory."""
        with mock.patch.dict(os.environ, {"ARI_INSTANCE_ROOT": str(tmp_path)}, clear=True):
            settings = TriageSettings(instance_root=tmp_path)
            assert settings.cache_dir == tmp_path / "cache"
            assert settings.engagement_path == tmp_path / "cache" / "engagement.json"

    def test_engagement_path_override(self, tmp_path):
        target = tmp_path / "elsewhere.json"
        with mock.patch.dict(os.environ, {"ARI_ENGAGEMENT_FILE": str(target)}, clear=True):
            assert TriageSettings().engagement_path == Path(target)


class TestSettingsAccessor:
    """Test cached accessor functions."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reset_settings_reloads(self):
        """reset_settings() picks up environment changes."""
        with mock.patch.dict(os.environ, {"ARI_LOG_JSON": "1"}, clear=True):
            reset_settings()
            assert get_settings().log_json is True

        with mock.patch.dict(os.environ, {}, clear=True):
            reset_settings()
            assert get_settings().log_json is False

    def test_debug_level_from_environment(self):
        with mock.patch.dict(os.environ, {"ARI_LOG_LEVEL": "DEBUG"}, clear=True):
            reset_settings()
            assert get_settings().effective_log_level == "DEBUG"
