"""
Priority Scorer.

Multi-factor priority scoring. Five weighted factors combine into a
continuous score in [0, 1]:

    score = 0.30 urgency + 0.25 impact + 0.20 time_sensitivity
          + 0.15 user_relevance + 0.10 (context_modifier + 1) / 2

The score decays exponentially with age according to the category's decay
profile, and the decayed score maps to a priority level:

    >= 0.80 -> P0 (immediate, bypasses quiet hours and the daily cap)
    >= 0.60 -> P1 (push during active hours)
    >= 0.40 -> P2 (push during active hours)
    >= 0.20 -> P3 (batch into the next digest)
    <  0.20 -> P4 (log only)

The scorer also learns per-category engagement as an exponential moving
average of acknowledge/ignore feedback.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.logging import get_logger
from .config import DecayConfig, ScoringWindowsConfig
from .enricher import EnrichedNotification
from .models import DecayProfile, EngagementState, PriorityLevel, ScoreBreakdown, ScoreResult
from .policies import CategoryPolicy, CategoryPolicyTable, coerce_number, normalize_category
from .quiet_hours import QuietHoursChecker, fractional_hour, in_window

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

WEIGHTS = {
    "urgency": 0.30,
    "impact": 0.25,
    "time_sensitivity": 0.20,
    "user_relevance": 0.15,
    "context_modifier": 0.10,
}

PRIORITY_THRESHOLDS: list[tuple[float, PriorityLevel]] = [
    (0.80, PriorityLevel.P0),
    (0.60, PriorityLevel.P1),
    (0.40, PriorityLevel.P2),
    (0.20, PriorityLevel.P3),
]

ENGAGEMENT_PRIOR = 0.5
ENGAGEMENT_RETENTION = 0.9  # new = old * 0.9 + signal * 0.1

ESCALATION_STEP = 0.1
ESCALATION_CAP = 0.3
RECENT_SIMILAR_PENALTY = -0.2
QUIET_HOURS_PENALTY = -0.3
DEEP_WORK_PENALTY = -0.15
WEEKEND_PENALTY = -0.1
HIGH_ENGAGEMENT = 0.7
LOW_ENGAGEMENT = 0.3
ENGAGEMENT_ADJUSTMENT = 0.1
MODIFIER_LIMIT = 0.5

# Factor overrides for callers still using named priorities
LEGACY_PRIORITY_OVERRIDES: dict[str, dict[str, float]] = {
    "critical": {"urgency": 1.0, "impact": 1.0, "time_sensitivity": 1.0},
    "high": {"urgency": 0.8, "impact": 0.7, "time_sensitivity": 0.7},
    "normal": {"urgency": 0.5, "impact": 0.5, "time_sensitivity": 0.5},
    "low": {"urgency": 0.2, "impact": 0.3, "time_sensitivity": 0.2},
    "silent": {"urgency": 0.0, "impact": 0.1, "time_sensitivity": 0.0},
}


def clamp(value: float, low: float, high: float, default: float | None = None) -> float:
    """Clamp to [low, high]; NaN becomes ``default`` (or ``low``)."""
    if value != value:  # NaN
        return low if default is None else default
    return max(low, min(high, value))


def legacy_priority_overrides(name: str) -> dict[str, float]:
    """
    Map a legacy named priority to factor overrides.

    Raises:
        ValueError: If the name is not a known legacy priority
    """
    try:
        return dict(LEGACY_PRIORITY_OVERRIDES[name.lower()])
    except KeyError:
        valid = ", ".join(LEGACY_PRIORITY_OVERRIDES)
        raise ValueError(f"Unknown legacy priority '{name}'. Valid: {valid}") from None


@dataclass
class ScoringContext:
    """
    Situational inputs to the context modifier and decay.

    Defaults describe a fresh, first-time notification at midday on a weekday.
    """

    hour: float = 12.0  # Local fractional hour
    weekday: int = 2  # datetime.weekday(): Monday=0, Sunday=6
    quiet_hours: bool = False
    escalation_level: int = 0
    recent_similar: bool = False
    category_engagement: float = ENGAGEMENT_PRIOR  # Used when nothing is learned yet
    age_seconds: float = 0.0

    @property
    def is_weekend(self) -> bool:
        return self.weekday >= 5


class PriorityScorer:
    """
    Scores notifications and learns per-category engagement.

    Holds the engagement map; callers serialize access (the pipeline does
    so under its lock).
    """

    def __init__(
        self,
        policies: CategoryPolicyTable,
        quiet_hours: QuietHoursChecker | None = None,
        windows: ScoringWindowsConfig | None = None,
        decay: DecayConfig | None = None,
    ) -> None:
        self.policies = policies
        self.quiet_hours = quiet_hours
        self.windows = windows or ScoringWindowsConfig()
        self.decay = decay or DecayConfig()
        self._engagement: dict[str, EngagementState] = {}

    # =========================================================================
    # Scoring
    # =========================================================================

    def context_at(self, now: datetime, **kwargs: Any) -> ScoringContext:
        """Build a scoring context for a reference time."""
        local = self.quiet_hours.local_time(now) if self.quiet_hours else now
        quiet = self.quiet_hours.is_quiet_time(now) if self.quiet_hours else False
        return ScoringContext(
            hour=fractional_hour(local),
            weekday=local.weekday(),
            quiet_hours=quiet,
            **kwargs,
        )

    def score(
        self,
        enriched: EnrichedNotification,
        context: ScoringContext | None = None,
    ) -> ScoreResult:
        """
        Score an enriched notification.

        Explicit user_relevance and context_modifier values from the producer
        are used as given (clamped). Otherwise relevance comes from learned
        engagement and the modifier from the time-of-day base plus
        situational adjustments.

        Args:
            enriched: Notification with all fields populated
            context: Situational context (defaults to a neutral context)

        Returns:
            ScoreResult with raw and decayed score
        """
        ctx = context or ScoringContext()
        policy = enriched.policy
        category = enriched.category

        if enriched.user_relevance_explicit:
            relevance = enriched.user_relevance
        else:
            relevance = self.user_relevance(category, ctx)

        if enriched.context_modifier_explicit:
            modifier = clamp(enriched.context_modifier, -1.0, 1.0, 0.0)
        else:
            modifier = clamp(
                enriched.context_modifier + self.context_adjustment(category, policy, ctx),
                -MODIFIER_LIMIT,
                MODIFIER_LIMIT,
                0.0,
            )

        return self._combine(
            ScoreBreakdown(
                urgency=clamp(enriched.urgency, 0.0, 1.0),
                impact=clamp(enriched.impact, 0.0, 1.0),
                time_sensitivity=clamp(enriched.time_sensitivity, 0.0, 1.0),
                user_relevance=clamp(relevance, 0.0, 1.0),
                context_modifier=modifier,
            ),
            policy.decay_profile,
            ctx.age_seconds,
        )

    def score_category(
        self,
        category: str,
        context: ScoringContext | None = None,
        overrides: dict[str, float] | None = None,
    ) -> ScoreResult:
        """
        Score directly from a category's policy.

        Args:
            category: Category name (unknown names use the neutral policy)
            context: Situational context
            overrides: Optional urgency/impact/time_sensitivity/user_relevance values

        Returns:
            ScoreResult
        """
        ctx = context or ScoringContext()
        policy = self.policies.get(category)
        overrides = overrides or {}

        relevance = coerce_number(overrides.get("user_relevance"), None)
        if relevance is None:
            relevance = self.user_relevance(category, ctx)

        modifier = clamp(
            self.context_adjustment(category, policy, ctx), -MODIFIER_LIMIT, MODIFIER_LIMIT
        )

        return self._combine(
            ScoreBreakdown(
                urgency=clamp(coerce_number(overrides.get("urgency"), policy.urgency), 0.0, 1.0),
                impact=clamp(coerce_number(overrides.get("impact"), policy.impact), 0.0, 1.0),
                time_sensitivity=clamp(
                    coerce_number(overrides.get("time_sensitivity"), policy.time_sensitivity),
                    0.0,
                    1.0,
                ),
                user_relevance=clamp(relevance, 0.0, 1.0),
                context_modifier=modifier,
            ),
            policy.decay_profile,
            ctx.age_seconds,
        )

    def _combine(
        self, breakdown: ScoreBreakdown, profile: DecayProfile, age_seconds: float
    ) -> ScoreResult:
        raw = (
            breakdown.urgency * WEIGHTS["urgency"]
            + breakdown.impact * WEIGHTS["impact"]
            + breakdown.time_sensitivity * WEIGHTS["time_sensitivity"]
            + breakdown.user_relevance * WEIGHTS["user_relevance"]
            + (breakdown.context_modifier + 1) / 2 * WEIGHTS["context_modifier"]
        )
        score = clamp(raw, 0.0, 1.0)
        decayed = self.apply_decay(score, profile, age_seconds)
        return ScoreResult(
            score=score,
            decayed_score=decayed,
            priority=self.score_to_priority(decayed),
            breakdown=breakdown,
            decay_profile=profile,
        )

    def user_relevance(self, category: str, context: ScoringContext) -> float:
        """Learned engagement for the category, else the context's value."""
        state = self._engagement.get(normalize_category(category))
        if state is not None:
            return state.score
        return clamp(context.category_engagement, 0.0, 1.0, ENGAGEMENT_PRIOR)

    def context_adjustment(
        self, category: str, policy: CategoryPolicy, context: ScoringContext
    ) -> float:
        """
        Sum of situational adjustments to the context modifier.

        Not clamped; callers add the time-of-day base and clamp the total.
        """
        adjustment = 0.0

        if context.escalation_level > 0:
            adjustment += min(context.escalation_level * ESCALATION_STEP, ESCALATION_CAP)

        if context.recent_similar:
            adjustment += RECENT_SIMILAR_PENALTY

        if not policy.urgent:
            if context.quiet_hours:
                adjustment += QUIET_HOURS_PENALTY
            if in_window(context.hour, *self.windows.deep_work):
                adjustment += DEEP_WORK_PENALTY

        if context.is_weekend and not policy.critical:
            adjustment += WEEKEND_PENALTY

        engagement = self.user_relevance(category, context)
        if engagement > HIGH_ENGAGEMENT:
            adjustment += ENGAGEMENT_ADJUSTMENT
        elif engagement < LOW_ENGAGEMENT:
            adjustment -= ENGAGEMENT_ADJUSTMENT

        return adjustment

    def apply_decay(self, score: float, profile: DecayProfile, age_seconds: float) -> float:
        """
        Exponential decay: score * exp(-ln2 * age / half_life).

        Non-positive ages leave the score unchanged.
        """
        if age_seconds <= 0:
            return score
        half_life = self.decay.half_life_seconds(profile)
        return score * math.exp(-math.log(2) * age_seconds / half_life)

    @staticmethod
    def score_to_priority(score: float) -> PriorityLevel:
        """Map a score to its priority level."""
        for minimum, level in PRIORITY_THRESHOLDS:
            if score >= minimum:
                return level
        return PriorityLevel.P4

    # =========================================================================
    # Engagement Learning
    # =========================================================================

    def update_engagement(self, category: str, engaged: bool) -> float:
        """
        Record acknowledge (engaged) or ignore feedback for a category.

        Returns:
            The updated engagement score
        """
        key = normalize_category(category)
        state = self._engagement.setdefault(key, EngagementState())
        signal = 1.0 if engaged else 0.0
        state.score = state.score * ENGAGEMENT_RETENTION + signal * (1 - ENGAGEMENT_RETENTION)
        if engaged:
            state.positive += 1
        else:
            state.negative += 1

        logger.debug("Engagement for '%s' now %.3f", key, state.score)
        return state.score

    def get_engagement(self, category: str) -> float:
        """Current engagement score for a category (prior if untracked)."""
        state = self._engagement.get(normalize_category(category))
        return state.score if state else ENGAGEMENT_PRIOR

    def engagement_stats(self) -> dict[str, dict[str, Any]]:
        """Scores (rounded) and interaction counts for all tracked categories."""
        return {
            "scores": {cat: round(s.score, 3) for cat, s in self._engagement.items()},
            "interactions": {
                cat: {"positive": s.positive, "negative": s.negative}
                for cat, s in self._engagement.items()
            },
        }

    def export_engagement(self) -> dict[str, dict[str, Any]]:
        """Flat record of engagement state for persistence."""
        return {cat: state.to_dict() for cat, state in self._engagement.items()}

    def import_engagement(self, data: dict[str, Any]) -> int:
        """
        Load engagement state from a persisted record.

        Malformed entries are skipped with a warning.

        Returns:
            Number of categories imported
        """
        imported = 0
        for category, entry in data.items():
            if not isinstance(entry, dict):
                logger.warning("Skipping engagement entry '%s': expected a mapping", category)
                continue
            try:
                self._engagement[str(category).lower()] = EngagementState.from_dict(entry)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping engagement entry '%s': %s", category, e)
                continue
            imported += 1
        return imported

    def reset_engagement(self, category: str | None = None) -> None:
        """Forget learned engagement for one category, or all of them."""
        if category is None:
            self._engagement.clear()
        else:
            self._engagement.pop(normalize_category(category), None)

    def tracked_categories(self) -> list[str]:
        return sorted(self._engagement)
