"""
Notification Triage Module.

Scores, deduplicates, routes and batches notifications for one recipient.

Components:
- CategoryPolicyTable: Per-category scoring priors (YAML overridable)
- Enricher: Fills missing scoring fields from policy and time of day
- PriorityScorer: Weighted score, decay, priority levels, engagement learning
- DedupWindow: Suppresses repeats of the same source/title
- QuietHoursChecker: Timezone-aware quiet hours
- Router: Channel decision with quiet hours and a daily push cap
- NotificationGrouper: Grouping, digests and auto-resolve
- NotificationPipeline: Orchestration and cleanup lifecycle
- EngagementStore: JSON persistence of learned engagement

Usage:
    from ari_triage.triage import NotificationInput, create_pipeline

    pipeline = create_pipeline(delivery=sink)
    outcome = pipeline.process(NotificationInput(source="ci", title="Build failed",
                                                 category="error"))
"""

from .config import (
    DecayConfig,
    DedupConfig,
    DeliveryBudgetConfig,
    GroupingConfig,
    QuietHoursConfig,
    ScoringWindowsConfig,
    TriageConfig,
)
from .dedup import DedupWindow, compute_dedup_key
from .engagement import EngagementStore
from .enricher import EnrichedNotification, Enricher
from .grouper import NotificationGrouper
from .models import (
    AutoResolveResult,
    Channel,
    DecayProfile,
    EngagementState,
    GroupedNotification,
    GroupSummary,
    NotificationInput,
    NotificationOutcome,
    NotificationRecord,
    PriorityLevel,
    ProcessingStage,
    ScoreBreakdown,
    ScoredNotification,
    ScoreResult,
)
from .pipeline import NotificationPipeline, create_pipeline
from .policies import DEFAULT_POLICIES, NEUTRAL_POLICY, CategoryPolicy, CategoryPolicyTable
from .quiet_hours import QuietHoursChecker
from .router import DailyPushCounter, RouteDecision, Router
from .scorer import PriorityScorer, ScoringContext, legacy_priority_overrides
from .sinks import AuditSink, DeliverySink, LoggingAuditSink, LoggingDeliverySink

__all__ = [
    # Config
    "DecayConfig",
    "DedupConfig",
    "DeliveryBudgetConfig",
    "GroupingConfig",
    "QuietHoursConfig",
    "ScoringWindowsConfig",
    "TriageConfig",
    # Models
    "AutoResolveResult",
    "Channel",
    "DecayProfile",
    "EngagementState",
    "GroupedNotification",
    "GroupSummary",
    "NotificationInput",
    "NotificationOutcome",
    "NotificationRecord",
    "PriorityLevel",
    "ProcessingStage",
    "ScoreBreakdown",
    "ScoredNotification",
    "ScoreResult",
    # Policies
    "CategoryPolicy",
    "CategoryPolicyTable",
    "DEFAULT_POLICIES",
    "NEUTRAL_POLICY",
    # Components
    "DailyPushCounter",
    "DedupWindow",
    "EngagementStore",
    "EnrichedNotification",
    "Enricher",
    "NotificationGrouper",
    "NotificationPipeline",
    "PriorityScorer",
    "QuietHoursChecker",
    "RouteDecision",
    "Router",
    "ScoringContext",
    "compute_dedup_key",
    "create_pipeline",
    "legacy_priority_overrides",
    # Sinks
    "AuditSink",
    "DeliverySink",
    "LoggingAuditSink",
    "LoggingDeliverySink",
]
