"""
Notification Enricher.

Fills missing scoring fields on a raw notification from the category
policy table and the recipient's time of day. Explicit caller values
always win.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from .config import ScoringWindowsConfig
from .models import NotificationInput
from .policies import CategoryPolicy, CategoryPolicyTable, coerce_number, normalize_category
from .quiet_hours import fractional_hour, in_window, to_local

DEFAULT_USER_RELEVANCE = 0.5
FAMILY_TIME_MODIFIER = -0.3
WORK_TIME_MODIFIER = 0.1


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class EnrichedNotification:
    """
    A notification with every scoring field populated.

    ``category`` is the normalized policy key; text fields and metadata are
    coerced to their expected types.
    """

    notification: NotificationInput
    policy: CategoryPolicy
    category: str
    urgency: float
    impact: float
    time_sensitivity: float
    user_relevance: float
    context_modifier: float
    user_relevance_explicit: bool
    context_modifier_explicit: bool
    local_time: datetime
    source: str = ""
    title: str = ""
    body: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class Enricher:
    """
    Substitutes category defaults for missing scoring fields.

    Stateless apart from its configuration; safe to share.
    """

    def __init__(
        self,
        policies: CategoryPolicyTable,
        windows: ScoringWindowsConfig | None = None,
        timezone: ZoneInfo | None = None,
    ) -> None:
        self.policies = policies
        self.windows = windows or ScoringWindowsConfig()
        self.timezone = timezone or ZoneInfo("UTC")

    def time_of_day_modifier(self, local: datetime) -> float:
        """Base context modifier for the recipient's local hour."""
        hour = fractional_hour(local)
        if in_window(hour, *self.windows.family):
            return FAMILY_TIME_MODIFIER
        if in_window(hour, *self.windows.work):
            return WORK_TIME_MODIFIER
        return 0.0

    def enrich(
        self, notification: NotificationInput, now: datetime | None = None
    ) -> EnrichedNotification:
        """
        Populate scoring fields for a notification.

        Args:
            notification: Raw notification from a producer
            now: Reference time (defaults to current time)

        Returns:
            EnrichedNotification with defaults applied
        """
        category = normalize_category(notification.category)
        policy = self.policies.get(category)
        local = to_local(now, self.timezone)

        # Unusable values (None, NaN, non-numeric) count as missing
        relevance = coerce_number(notification.user_relevance, None)
        modifier = coerce_number(notification.context_modifier, None)
        metadata = notification.metadata

        return EnrichedNotification(
            notification=notification,
            policy=policy,
            category=category,
            urgency=coerce_number(notification.urgency, policy.urgency),
            impact=coerce_number(notification.impact, policy.impact),
            time_sensitivity=coerce_number(
                notification.time_sensitivity, policy.time_sensitivity
            ),
            user_relevance=DEFAULT_USER_RELEVANCE if relevance is None else relevance,
            context_modifier=(
                self.time_of_day_modifier(local) if modifier is None else modifier
            ),
            user_relevance_explicit=relevance is not None,
            context_modifier_explicit=modifier is not None,
            local_time=local,
            source=_text(notification.source),
            title=_text(notification.title),
            body=_text(notification.body),
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )
