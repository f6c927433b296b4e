"""
Category Policy Table.

Static priors per notification category: default urgency, impact and
time sensitivity, the decay profile, a display label, and whether the
category is exempt from quiet-hour or weekend penalties.

User overrides can be supplied as YAML and are merged over the built-in table.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ..core.logging import get_logger
from .models import DecayProfile

logger = get_logger(__name__)


DEFAULT_CATEGORY = "general"


def coerce_number(value: Any, default: float | None) -> float | None:
    """Coerce to a float, falling back on anything unusable (including NaN)."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return number


def normalize_category(category: Any) -> str:
    """Lookup key for a category; missing or non-string names become the default."""
    if not isinstance(category, str) or not category.strip():
        return DEFAULT_CATEGORY
    return category.strip().lower()


def _unit(value: Any, default: float) -> float:
    """Coerce to a float in [0, 1], falling back on anything unusable."""
    number = coerce_number(value, default)
    return max(0.0, min(1.0, number))


@dataclass(frozen=True)
class CategoryPolicy:
    """Scoring priors for a single notification category."""

    urgency: float
    impact: float
    time_sensitivity: float
    decay_profile: DecayProfile
    label: str
    urgent: bool = False  # Exempt from quiet-hour and deep-work penalties
    critical: bool = False  # Exempt from the weekend penalty

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: dict[str, Any],
        base: CategoryPolicy | None = None,
    ) -> CategoryPolicy:
        """
        Create a policy from a configuration mapping.

        Missing fields inherit from ``base`` (or the neutral policy).

        Raises:
            ValueError: If decay_profile is not a known profile
        """
        base = base or NEUTRAL_POLICY
        profile_raw = data.get("decay_profile", base.decay_profile.value)
        try:
            profile = DecayProfile(profile_raw)
        except ValueError as e:
            valid = ", ".join(p.value for p in DecayProfile)
            raise ValueError(
                f"Unknown decay_profile '{profile_raw}' for category '{name}'. Valid: {valid}"
            ) from e

        default_label = name.title() if base is NEUTRAL_POLICY else base.label

        return cls(
            urgency=_unit(data.get("urgency"), base.urgency),
            impact=_unit(data.get("impact"), base.impact),
            time_sensitivity=_unit(data.get("time_sensitivity"), base.time_sensitivity),
            decay_profile=profile,
            label=str(data.get("label") or default_label),
            urgent=bool(data.get("urgent", base.urgent)),
            critical=bool(data.get("critical", base.critical)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        return {
            "urgency": self.urgency,
            "impact": self.impact,
            "time_sensitivity": self.time_sensitivity,
            "decay_profile": self.decay_profile.value,
            "label": self.label,
            "urgent": self.urgent,
            "critical": self.critical,
        }


# Fallback for unknown categories
NEUTRAL_POLICY = CategoryPolicy(
    urgency=0.3,
    impact=0.3,
    time_sensitivity=0.3,
    decay_profile=DecayProfile.DAY,
    label="General",
)


def _policy(
    urgency: float,
    impact: float,
    time_sensitivity: float,
    decay: DecayProfile,
    label: str,
    urgent: bool = False,
    critical: bool = False,
) -> CategoryPolicy:
    return CategoryPolicy(urgency, impact, time_sensitivity, decay, label, urgent, critical)


_P = DecayProfile.PERISHABLE
_S = DecayProfile.SHORT
_D = DecayProfile.DAY
_L = DecayProfile.PERSISTENT

DEFAULT_POLICIES: dict[str, CategoryPolicy] = {
    "security": _policy(1.0, 1.0, 1.0, _P, "Security", urgent=True, critical=True),
    "error": _policy(0.7, 0.7, 0.7, _S, "Error", urgent=True, critical=True),
    "budget": _policy(0.8, 0.7, 0.6, _D, "Budget"),
    "opportunity": _policy(0.8, 0.6, 0.9, _P, "Opportunity"),
    "question": _policy(0.8, 0.7, 0.6, _S, "Question", urgent=True),
    "milestone": _policy(0.2, 0.3, 0.1, _L, "Milestone"),
    "insight": _policy(0.2, 0.4, 0.1, _L, "Insight"),
    "reminder": _policy(0.5, 0.4, 0.7, _S, "Reminder"),
    "finance": _policy(0.5, 0.7, 0.4, _D, "Finance"),
    "task": _policy(0.3, 0.3, 0.3, _D, "Task"),
    "daily": _policy(0.3, 0.3, 0.3, _D, "Daily"),
    "system": _policy(0.3, 0.3, 0.2, _D, "System"),
    "billing": _policy(0.4, 0.5, 0.4, _D, "Billing"),
    "value": _policy(0.1, 0.2, 0.1, _L, "Value"),
    "adaptive": _policy(0.1, 0.2, 0.1, _L, "Adaptive"),
    "governance": _policy(0.6, 0.7, 0.5, _S, "Governance"),
}


class CategoryPolicyTable:
    """
    Read-only lookup of category policies.

    Unknown or malformed categories resolve to the neutral policy rather
    than failing.

    Usage:
        table = CategoryPolicyTable.from_yaml(Path("userdata/policies.yaml"))
        policy = table.get("security")
    """

    def __init__(self, policies: Mapping[str, CategoryPolicy] | None = None) -> None:
        source = DEFAULT_POLICIES if policies is None else policies
        self._policies: Mapping[str, CategoryPolicy] = MappingProxyType(
            {name.lower(): policy for name, policy in source.items()}
        )

    @classmethod
    def from_yaml(cls, path: Path) -> CategoryPolicyTable:
        """
        Load policy overrides from YAML, merged over the built-in table.

        Entries that fail to parse are skipped with a warning.

        Args:
            path: YAML file mapping category name -> policy fields

        Returns:
            CategoryPolicyTable with overrides applied

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the YAML is invalid or not a mapping
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in policy file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Policy file {path} must be a YAML mapping")

        merged = dict(DEFAULT_POLICIES)
        for name, entry in data.items():
            key = str(name).lower()
            if not isinstance(entry, dict):
                logger.warning("Skipping policy '%s': expected a mapping", key)
                continue
            try:
                merged[key] = CategoryPolicy.from_dict(key, entry, base=merged.get(key))
            except ValueError as e:
                logger.warning("Skipping policy '%s': %s", key, e)

        logger.info("Loaded %d category policy override(s) from %s", len(data), path)
        return cls(merged)

    def get(self, category: str | None) -> CategoryPolicy:
        """Return the policy for a category, or the neutral policy."""
        policy = self._policies.get(normalize_category(category))
        if policy is None:
            logger.debug("Unknown category '%s', using neutral policy", category)
            return NEUTRAL_POLICY
        return policy

    def label(self, category: str) -> str:
        """Display label for a category."""
        policy = self._policies.get(category.lower()) if isinstance(category, str) else None
        if policy is None:
            if isinstance(category, str) and category:
                return category.title()
            return NEUTRAL_POLICY.label
        return policy.label

    def __contains__(self, category: object) -> bool:
        return isinstance(category, str) and category.lower() in self._policies

    def __len__(self) -> int:
        return len(self._policies)

    @property
    def categories(self) -> list[str]:
        """All known category names."""
        return sorted(self._policies)
