"""
Triage Data Models.

Core data structures passed between the enricher, scorer, router, grouper
and pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class PriorityLevel(str, Enum):
    """Discrete priority bucket derived from the continuous score."""

    P0 = "P0"  # Immediate, critical channel, bypasses quiet hours and cap
    P1 = "P1"  # Push during active hours
    P2 = "P2"  # Push during active hours, dropped to log in quiet hours
    P3 = "P3"  # Batched into the next digest
    P4 = "P4"  # Log only, never pushed

    @property
    def ordinal(self) -> int:
        """Lower ordinal means more urgent."""
        return int(self.value[1])

    def higher(self, other: PriorityLevel) -> PriorityLevel:
        """Return the more urgent of two levels."""
        return self if self.ordinal <= other.ordinal else other


class DecayProfile(str, Enum):
    """Half-life class controlling how quickly urgency fades with age."""

    PERISHABLE = "perishable"
    SHORT = "short"
    DAY = "day"
    PERSISTENT = "persistent"


class Channel(str, Enum):
    """Routing target for a scored notification."""

    CRITICAL = "critical"  # Immediate critical channel (SMS + push)
    PUSH = "push"  # Immediate push channel
    BATCH = "batch"  # Deferred to the next digest
    LOG = "log"  # Recorded, never pushed


class ProcessingStage(str, Enum):
    """Lifecycle stages a notification passes through inside the pipeline."""

    INGESTED = "ingested"
    ENRICHED = "enriched"
    SCORED = "scored"
    DEDUPED = "deduped"  # Terminal
    ROUTED = "routed"
    DELIVERED = "delivered"
    BATCHED = "batched"
    LOGGED = "logged"
    TRACKED = "tracked"  # Terminal


@dataclass
class NotificationInput:
    """
    A raw notification as emitted by an upstream producer.

    All scoring fields are optional; missing values are filled from the
    category policy table by the enricher.
    """

    source: str
    title: str
    body: str = ""
    category: str = "general"
    urgency: float | None = None
    impact: float | None = None
    time_sensitivity: float | None = None
    user_relevance: float | None = None
    context_modifier: float | None = None  # [-1, 1]
    metadata: dict[str, Any] = field(default_factory=dict)
    group_key: str | None = None
    created_at: datetime | None = None  # Origin time, for decay of aged items


@dataclass
class ScoreBreakdown:
    """The five clamped components that fed the weighted score."""

    urgency: float
    impact: float
    time_sensitivity: float
    user_relevance: float
    context_modifier: float  # Un-normalized, in [-1, 1]

    def to_dict(self) -> dict[str, float]:
        """Convert to JSON-serializable dict."""
        return {
            "urgency": round(self.urgency, 3),
            "impact": round(self.impact, 3),
            "time_sensitivity": round(self.time_sensitivity, 3),
            "user_relevance": round(self.user_relevance, 3),
            "context_modifier": round(self.context_modifier, 3),
        }


@dataclass
class ScoreResult:
    """Output of the priority scorer."""

    score: float  # Un-decayed, retained for reporting
    decayed_score: float  # Used for priority determination
    priority: PriorityLevel
    breakdown: ScoreBreakdown
    decay_profile: DecayProfile


@dataclass
class ScoredNotification:
    """A notification after enrichment and scoring."""

    id: str
    source: str
    title: str
    body: str
    category: str
    score: float
    decayed_score: float
    priority: PriorityLevel
    breakdown: ScoreBreakdown
    dedup_key: str
    ingested_at: datetime
    decay_profile: DecayProfile
    metadata: dict[str, Any] = field(default_factory=dict)
    group_key: str | None = None

    def to_record(self) -> NotificationRecord:
        """Build the record the grouper tracks for this notification."""
        return NotificationRecord(
            id=self.id,
            category=self.category,
            title=self.title,
            body=self.body,
            priority=self.priority,
            created_at=self.ingested_at,
            score=self.score,
            dedup_key=self.dedup_key,
            group_key=self.group_key,
        )


@dataclass
class NotificationOutcome:
    """Result of processing one notification through the pipeline."""

    id: str
    priority: PriorityLevel
    score: float
    delivered: bool
    reason: str
    processed_at: datetime
    channel: Channel | None = None  # None when deduped
    stages: list[ProcessingStage] = field(default_factory=list)
    deliver_after: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "priority": self.priority.value,
            "score": round(self.score, 3),
            "delivered": self.delivered,
            "channel": self.channel.value if self.channel else None,
            "reason": self.reason,
            "processed_at": self.processed_at.isoformat(),
            "stages": [s.value for s in self.stages],
            "deliver_after": self.deliver_after.isoformat() if self.deliver_after else None,
        }


@dataclass
class NotificationRecord:
    """A deferred notification tracked by the grouper."""

    id: str
    category: str
    title: str
    body: str
    priority: PriorityLevel
    created_at: datetime
    score: float = 0.0
    dedup_key: str | None = None
    group_key: str | None = None


@dataclass
class GroupedNotification:
    """Notifications sharing a group key, awaiting summary."""

    group_key: str
    category: str
    priority: PriorityLevel  # Highest priority among members
    records: list[NotificationRecord]
    created_at: datetime
    updated_at: datetime
    flushed: bool = False


@dataclass
class GroupSummary:
    """One collapsed, human-scale summary of several notifications."""

    group_key: str
    category: str
    priority: PriorityLevel
    title: str
    body: str
    count: int
    oldest_at: datetime
    newest_at: datetime


@dataclass
class AutoResolveResult:
    """Records that exceeded their priority's timeout without acknowledgment."""

    resolved: list[NotificationRecord]
    reason: str = "Auto-resolved: exceeded timeout without acknowledgment"


@dataclass
class EngagementState:
    """Learned engagement for one category."""

    score: float = 0.5
    positive: int = 0
    negative: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat persistence record."""
        return {"score": self.score, "positive": self.positive, "negative": self.negative}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngagementState:
        """Create from a persistence record, clamping the score."""
        score = float(data.get("score", 0.5))
        return cls(
            score=max(0.0, min(1.0, score)),
            positive=int(data.get("positive", 0)),
            negative=int(data.get("negative", 0)),
        )
