"""
Notification Pipeline.

Orchestrates triage of one notification at a time through the stages

    INGESTED -> ENRICHED -> SCORED -> {DEDUPED | ROUTED}
             -> {DELIVERED | BATCHED | LOGGED} -> TRACKED

and owns the background cleanup of the dedup window and flushed groups.

Usage:
    pipeline = create_pipeline(delivery=my_sink, audit=my_audit)
    outcome = pipeline.process(NotificationInput(source="monitor", title="Disk full"))

    await pipeline.start()  # Background sweep
    ...
    await pipeline.stop()
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
import threading
from datetime import datetime, timedelta
from typing import Any

from ..core.config import TriageSettings, get_settings
from ..core.logging import get_logger
from .config import TriageConfig
from .dedup import DedupWindow, compute_dedup_key
from .engagement import EngagementStore
from .enricher import Enricher
from .grouper import NotificationGrouper
from .models import (
    Channel,
    GroupSummary,
    NotificationInput,
    NotificationOutcome,
    ProcessingStage,
    ScoredNotification,
)
from .policies import CategoryPolicyTable
from .quiet_hours import QuietHoursChecker
from .router import RouteDecision, Router
from .scorer import PriorityScorer
from .sinks import AuditSink, DeliverySink, urgency_tag

logger = get_logger(__name__)

AUDIT_ACTION = "notification:processed"


def _escalation_level(metadata: dict[str, Any] | None) -> int:
    if not isinstance(metadata, dict):
        return 0
    try:
        return max(0, int(metadata.get("escalation_level", 0)))
    except (TypeError, ValueError):
        return 0


class NotificationPipeline:
    """
    Single-recipient notification triage.

    All mutable state (dedup window, daily counter, groups, engagement) is
    owned by this instance and guarded by one lock held for the whole of
    each operation.
    """

    def __init__(
        self,
        config: TriageConfig,
        enricher: Enricher,
        scorer: PriorityScorer,
        dedup: DedupWindow,
        router: Router,
        grouper: NotificationGrouper,
        quiet_hours: QuietHoursChecker,
        delivery: DeliverySink | None = None,
        audit: AuditSink | None = None,
        engagement_store: EngagementStore | None = None,
    ) -> None:
        self.config = config
        self.enricher = enricher
        self.scorer = scorer
        self.dedup = dedup
        self.router = router
        self.grouper = grouper
        self.quiet_hours = quiet_hours
        self.delivery = delivery
        self.audit = audit
        self.engagement_store = engagement_store

        self._lock = threading.Lock()
        self._sequence = itertools.count()
        self._running = False
        self._cleanup_task: asyncio.Task | None = None

        if engagement_store is not None:
            imported = scorer.import_engagement(engagement_store.load())
            if imported:
                logger.info("Loaded engagement for %d categories", imported)

    def _now(self, now: datetime | None) -> datetime:
        return self.quiet_hours.local_time(now)

    # =========================================================================
    # Processing
    # =========================================================================

    def process(
        self, notification: NotificationInput, now: datetime | None = None
    ) -> NotificationOutcome:
        """
        Triage one notification.

        Args:
            notification: Raw notification from a producer
            now: Reference time (defaults to current time)

        Returns:
            NotificationOutcome describing what happened
        """
        with self._lock:
            now = self._now(now)
            stages = [ProcessingStage.INGESTED]
            notification_id = self._make_id(notification, now)

            enriched = self.enricher.enrich(notification, now)
            stages.append(ProcessingStage.ENRICHED)

            dedup_key = compute_dedup_key(enriched.source, enriched.title)
            duplicate = self.dedup.is_duplicate(dedup_key, now)
            age = 0.0
            if isinstance(notification.created_at, datetime):
                age = (now - self._now(notification.created_at)).total_seconds()

            context = self.scorer.context_at(
                now,
                escalation_level=_escalation_level(enriched.metadata),
                recent_similar=not duplicate
                and self.dedup.seen_within(dedup_key, now, self.dedup.window * 2),
                age_seconds=max(0.0, age),
            )
            result = self.scorer.score(enriched, context)
            stages.append(ProcessingStage.SCORED)

            scored = ScoredNotification(
                id=notification_id,
                source=enriched.source,
                title=enriched.title,
                body=enriched.body,
                category=enriched.category,
                score=result.score,
                decayed_score=result.decayed_score,
                priority=result.priority,
                breakdown=result.breakdown,
                dedup_key=dedup_key,
                ingested_at=now,
                decay_profile=result.decay_profile,
                metadata=enriched.metadata,
                group_key=notification.group_key,
            )

            if duplicate:
                stages.append(ProcessingStage.DEDUPED)
                logger.debug("Notification %s deduped (key %s)", notification_id, dedup_key)
                return NotificationOutcome(
                    id=notification_id,
                    priority=scored.priority,
                    score=scored.score,
                    delivered=False,
                    reason=f"deduped: same key within {self.dedup.window_minutes:g} min",
                    processed_at=now,
                    stages=stages,
                )
            self.dedup.mark_seen(dedup_key, now)

            decision = self.router.route(scored.priority, now)
            if decision.channel is Channel.PUSH and self.grouper.should_defer(scored.to_record()):
                decision = RouteDecision(
                    Channel.BATCH, f"grouped with pending '{scored.group_key}'"
                )
            stages.append(ProcessingStage.ROUTED)

            outcome = self._deliver(scored, decision, now, stages)
            self._track(scored, outcome)
            outcome.stages.append(ProcessingStage.TRACKED)

            logger.info(
                "Notification processed: %s",
                outcome.reason,
                extra={
                    "notification_id": notification_id,
                    "priority": scored.priority.value,
                    "channel": outcome.channel.value if outcome.channel else None,
                    "score": round(scored.score, 3),
                },
            )
            return outcome

    def _make_id(self, notification: NotificationInput, now: datetime) -> str:
        raw = f"{notification.source}:{notification.title}:{now.isoformat()}:{next(self._sequence)}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]

    def _deliver(
        self,
        scored: ScoredNotification,
        decision: RouteDecision,
        now: datetime,
        stages: list[ProcessingStage],
    ) -> NotificationOutcome:
        def outcome(delivered: bool, channel: Channel, reason: str) -> NotificationOutcome:
            return NotificationOutcome(
                id=scored.id,
                priority=scored.priority,
                score=scored.score,
                delivered=delivered,
                reason=reason,
                processed_at=now,
                channel=channel,
                stages=stages,
                deliver_after=decision.deliver_after,
            )

        if decision.channel is Channel.BATCH:
            group = self.grouper.add(scored.to_record(), now)
            stages.append(ProcessingStage.BATCHED)
            logger.debug("Notification %s batched into group '%s'", scored.id, group.group_key)
            return outcome(False, Channel.BATCH, decision.reason)

        if decision.channel is Channel.LOG:
            stages.append(ProcessingStage.LOGGED)
            return outcome(False, Channel.LOG, decision.reason)

        if self.delivery is None:
            logger.warning(
                "%s notification %s: no delivery sink configured",
                scored.priority.value,
                scored.id,
            )
            stages.append(ProcessingStage.LOGGED)
            return outcome(False, Channel.LOG, f"no delivery sink configured: {decision.reason}")

        try:
            self.delivery.deliver(scored.title, scored.body, urgency_tag(scored.priority))
        except Exception as e:
            logger.error("Delivery of %s failed: %s", scored.id, e, exc_info=True)
            stages.append(ProcessingStage.LOGGED)
            return outcome(False, Channel.LOG, f"delivery failed: {e}")

        if decision.channel is Channel.PUSH:
            self.router.record_push(now)
        stages.append(ProcessingStage.DELIVERED)
        return outcome(True, decision.channel, decision.reason)

    def _track(self, scored: ScoredNotification, outcome: NotificationOutcome) -> None:
        if self.audit is None:
            return
        event = {
            "action": AUDIT_ACTION,
            "details": {
                "id": scored.id,
                "source": scored.source,
                "priority": outcome.priority.value,
                "score": scored.score,
                "delivered": outcome.delivered,
                "channel": outcome.channel.value if outcome.channel else None,
                "reason": outcome.reason,
            },
        }
        try:
            self.audit.record(event)
        except Exception as e:
            logger.error("Audit sink raised for %s: %s", scored.id, e)

    # =========================================================================
    # Feedback, Digests and Stats
    # =========================================================================

    def record_feedback(self, category: str, engaged: bool) -> float:
        """
        Feed an acknowledge/ignore signal back into engagement learning.

        Persists engagement when a store is configured. A failed write is
        logged; the in-memory state is kept.

        Returns:
            Updated engagement score for the category
        """
        with self._lock:
            score = self.scorer.update_engagement(category, engaged)
            if self.engagement_store is not None:
                try:
                    self.engagement_store.save(self.scorer.export_engagement())
                except OSError as e:
                    logger.error("Could not persist engagement: %s", e)
            return score

    def flush_digest(self, now: datetime | None = None) -> list[GroupSummary]:
        """
        Build the batch digest from every pending group.

        Stale records are auto-resolved first and left out. All pending
        groups are marked flushed.

        Returns:
            Digest entries, most urgent first
        """
        with self._lock:
            now = self._now(now)
            pending = self.grouper.get_pending_groups()
            records = [r for g in pending for r in g.records]

            stale = self.grouper.get_auto_resolve_candidates(records, now)
            if stale.resolved:
                self.grouper.discard(r.id for r in stale.resolved)
                logger.info("Auto-resolved %d batched notification(s)", len(stale.resolved))

            pending = self.grouper.get_pending_groups()
            digest = self.grouper.generate_batch_digest(r for g in pending for r in g.records)
            for group in pending:
                self.grouper.flush(group.group_key)
                group.updated_at = now
            return digest

    def ready_summaries(self, now: datetime | None = None) -> list[GroupSummary]:
        """
        Summaries for pending groups that reached the ready threshold.

        Summarized groups are marked flushed.
        """
        with self._lock:
            now = self._now(now)
            summaries = []
            for group in self.grouper.get_ready_groups():
                summaries.append(self.grouper.generate_summary(group))
                self.grouper.flush(group.group_key)
                group.updated_at = now
            return summaries

    def daily_stats(self, now: datetime | None = None) -> dict[str, int]:
        """Pushes delivered today, records waiting for the digest, and the budget."""
        with self._lock:
            return {
                "pushed": self.router.pushes_today(self._now(now)),
                "batched": sum(len(g.records) for g in self.grouper.get_pending_groups()),
                "max": self.config.budget.max_daily_pushes,
                "min": self.config.budget.min_daily_pushes,
            }

    def engagement_stats(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return self.scorer.engagement_stats()

    # =========================================================================
    # Cleanup Lifecycle
    # =========================================================================

    def sweep(self, now: datetime | None = None) -> dict[str, int]:
        """
        Run one cleanup pass.

        Returns:
            Counts of evicted dedup entries and purged groups
        """
        with self._lock:
            now = self._now(now)
            evicted = self.dedup.cleanup_expired(now)
            purged = self.grouper.cleanup(now)

        if evicted or purged:
            logger.info("Cleanup evicted %d dedup entries, purged %d groups", evicted, purged)
        return {"dedup_evicted": evicted, "groups_purged": purged}

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background cleanup loop."""
        if self._running:
            logger.warning("Pipeline already running")
            return

        self._running = True
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(
            "Pipeline cleanup started (every %g min)", self.config.dedup.sweep_interval_minutes
        )

    async def stop(self) -> None:
        """Stop the background cleanup loop."""
        if not self._running:
            return

        self._running = False

        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        logger.info("Pipeline cleanup stopped")

    async def _cleanup_loop(self) -> None:
        """Periodic sweep of the dedup window and flushed groups."""
        interval = self.config.dedup.sweep_interval_minutes * 60
        while self._running:
            try:
                await asyncio.sleep(interval)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning("Cleanup error: %s", e)


# =============================================================================
# Composition Root
# =============================================================================


def create_pipeline(
    settings: TriageSettings | None = None,
    *,
    config: TriageConfig | None = None,
    policies: CategoryPolicyTable | None = None,
    delivery: DeliverySink | None = None,
    audit: AuditSink | None = None,
    engagement_store: EngagementStore | None = None,
) -> NotificationPipeline:
    """
    Wire a pipeline from settings.

    Args:
        settings: Environment settings (defaults to get_settings())
        config: Explicit triage config (defaults to one derived from settings)
        policies: Category policy table (defaults to the policy file or built-ins)
        delivery: Immediate delivery sink
        audit: Audit sink
        engagement_store: Engagement persistence (defaults to settings.engagement_path)

    Returns:
        Configured NotificationPipeline

    Raises:
        ValueError: If the configuration is invalid
    """
    settings = settings or get_settings()
    config = config or TriageConfig.from_settings(settings)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("Config error: %s", error)
        raise ValueError(f"Invalid triage configuration: {'; '.join(errors)}")

    if policies is None:
        if settings.policy_file is not None:
            policies = CategoryPolicyTable.from_yaml(settings.policy_file)
        else:
            policies = CategoryPolicyTable()

    if engagement_store is None:
        engagement_store = EngagementStore(settings.engagement_path)

    quiet_hours = QuietHoursChecker(config.quiet_hours)
    return NotificationPipeline(
        config=config,
        enricher=Enricher(policies, config.windows, quiet_hours.timezone),
        scorer=PriorityScorer(policies, quiet_hours, config.windows, config.decay),
        dedup=DedupWindow(window_minutes=config.dedup.window_minutes),
        router=Router(quiet_hours, config.budget),
        grouper=NotificationGrouper(policies, config.grouping),
        quiet_hours=quiet_hours,
        delivery=delivery,
        audit=audit,
        engagement_store=engagement_store,
    )
