"""
ARI Triage Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.
All environment variables are validated at first access with helpful error messages.

Usage:
    from ari_triage.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Data Paths:
    All persisted state is stored in {instance_root}/cache/:
    - cache/engagement.json: Learned per-category engagement scores

Environment Variables:
    ARI_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    ARI_DEBUG: Legacy debug flag (enables DEBUG level if set)
    ARI_LOG_JSON: Output logs as JSON
    ARI_INSTANCE_ROOT: Instance root override
    ARI_TIMEZONE: Recipient timezone (zoneinfo name)
    ARI_QUIET_HOURS_ENABLED: Enable quiet hours
    ARI_QUIET_HOURS_START: Quiet hours start, fractional local hour (21 = 9 PM)
    ARI_QUIET_HOURS_END: Quiet hours end, fractional local hour (6.5 = 6:30 AM)
    ARI_MAX_DAILY_PUSHES: Daily push cap
    ARI_MIN_DAILY_PUSHES: Daily push target floor (reporting only)
    ARI_DEDUP_WINDOW_MINUTES: Duplicate suppression window
    ARI_CLEANUP_INTERVAL_MINUTES: Background sweep interval
    ARI_GROUP_RETENTION_HOURS: Retention for flushed groups
    ARI_POLICY_FILE: YAML category policy overrides
    ARI_ENGAGEMENT_FILE: Engagement state JSON path override
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path | None:
    """
    Find the project root by searching upward for pyproject.toml.

    Returns:
        Directory containing pyproject.toml, or None if not found
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break  # Reached filesystem root
        current = parent

    return None


def _find_project_env_file() -> Path | None:
    """Return the project .env file if one exists next to pyproject.toml."""
    root = _find_project_root()
    if root is None:
        return None
    env_file = root / ".env"
    return env_file if env_file.exists() else None


def _find_instance_root() -> Path:
    """
    Find the ARI instance root directory.

    Resolution order:
    1. ARI_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    import os

    override = os.environ.get("ARI_INSTANCE_ROOT")
    if override:
        return Path(override)

    return _find_project_root() or Path.cwd()


# Resolve paths at module load time
_ENV_FILE = _find_project_env_file()
_INSTANCE_ROOT = _find_instance_root()


class TriageSettings(BaseSettings):
    """
    ARI triage configuration settings with validation.

    Environment variables are automatically loaded with the ARI_ prefix.
    All settings have sensible defaults and validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARI_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for ARI components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Recipient Schedule
    # =========================================================================

    timezone: str = Field(
        default="America/Indiana/Indianapolis",
        description="Recipient timezone used for quiet hours and daily rollover",
    )

    quiet_hours_enabled: bool = Field(
        default=True,
        description="Suppress non-critical pushes during quiet hours",
    )

    quiet_hours_start: float = Field(
        default=21.0,
        description="Quiet hours start as a fractional local hour",
    )

    quiet_hours_end: float = Field(
        default=6.5,
        description="Quiet hours end as a fractional local hour",
    )

    # =========================================================================
    # Delivery Budget
    # =========================================================================

    max_daily_pushes: int = Field(
        default=5,
        ge=0,
        description="Pushes per local day before non-critical items degrade to batch",
    )

    min_daily_pushes: int = Field(
        default=2,
        ge=0,
        description="Target floor of pushes per day (reported, not enforced)",
    )

    # =========================================================================
    # Dedup, Grouping and Cleanup
    # =========================================================================

    dedup_window_minutes: float = Field(
        default=15.0,
        gt=0,
        description="Window in which a repeated source/title is suppressed",
    )

    cleanup_interval_minutes: float = Field(
        default=30.0,
        gt=0,
        description="Interval of the background dedup/group sweep",
    )

    group_retention_hours: float = Field(
        default=24.0,
        gt=0,
        description="Hours a flushed group is retained before being purged",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default=_INSTANCE_ROOT,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    policy_file: Optional[Path] = Field(
        default=None,
        description="YAML file with category policy overrides",
    )

    engagement_file: Optional[Path] = Field(
        default=None,
        description="Engagement state JSON path (default: cache/engagement.json)",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def check_hour_range(cls, v: float) -> float:
        """Quiet hour bounds must fall within a single day."""
        if not 0 <= v < 24:
            raise ValueError("quiet hour must be in [0, 24)")
        return v

    @model_validator(mode="after")
    def check_push_budget(self) -> TriageSettings:
        """The push floor cannot exceed the cap."""
        if self.min_daily_pushes > self.max_daily_pushes:
            raise ValueError("min_daily_pushes must be <= max_daily_pushes")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy ARI_DEBUG.

        Priority:
        1. Explicit ARI_LOG_LEVEL
        2. ARI_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def cache_dir(self) -> Path:
        """Path to cache directory."""
        return self.instance_root / "cache"

    @property
    def engagement_path(self) -> Path:
        """Path to the persisted engagement state."""
        if self.engagement_file is not None:
            return self.engagement_file
        return self.cache_dir / "engagement.json"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> TriageSettings:
    """
    Get the cached settings instance.

    Settings are validated at first access.

    Returns:
        TriageSettings instance with validated configuration
    """
    return TriageSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()

