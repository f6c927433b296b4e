"""
Notification Grouper.

Batches deferred notifications and collapses related ones into summaries.

- Records sharing a group key accumulate in one group; ungrouped records
  get a group of their own keyed by id
- A group's priority is the highest among its members
- Groups are summarized, marked flushed, and purged once stale
- Non-critical records auto-resolve after a per-priority timeout
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from ..core.logging import get_logger
from .config import GroupingConfig
from .models import (
    AutoResolveResult,
    GroupedNotification,
    GroupSummary,
    NotificationRecord,
    PriorityLevel,
)
from .policies import CategoryPolicyTable

logger = get_logger(__name__)

MAX_SHOWN = 5
MAX_TITLE_LENGTH = 60


def _snippet(title: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def _overflow(lines: list[str], total: int) -> list[str]:
    if total > MAX_SHOWN:
        lines.append(f"  ... and {total - MAX_SHOWN} more")
    return lines


class NotificationGrouper:
    """
    Tracks deferred notifications by group key.

    Not thread-safe on its own; the pipeline serializes access.

    Usage:
        grouper = NotificationGrouper(policies)
        grouper.add(record, now)
        for group in grouper.get_ready_groups():
            summary = grouper.generate_summary(group)
            grouper.flush(group.group_key)
    """

    def __init__(
        self,
        policies: CategoryPolicyTable,
        config: GroupingConfig | None = None,
    ) -> None:
        self.policies = policies
        self.config = config or GroupingConfig()
        self._groups: dict[str, GroupedNotification] = {}

    def add(self, record: NotificationRecord, now: datetime | None = None) -> GroupedNotification:
        """
        Add a record to its group, creating the group if needed.

        A record arriving for a flushed group starts a fresh group under the
        same key.

        Returns:
            The group the record landed in
        """
        now = now or record.created_at
        key = record.group_key or record.id

        existing = self._groups.get(key)
        if existing is not None and not existing.flushed:
            existing.records.append(record)
            existing.updated_at = now
            existing.priority = existing.priority.higher(record.priority)
            return existing

        group = GroupedNotification(
            group_key=key,
            category=record.category,
            priority=record.priority,
            records=[record],
            created_at=now,
            updated_at=now,
        )
        self._groups[key] = group
        return group

    def should_defer(self, record: NotificationRecord) -> bool:
        """
        Check if a record should join a pending group instead of going out now.

        P0/P1 are never deferred. Others are deferred only when they carry a
        group key with an unflushed group already waiting.
        """
        if record.priority in (PriorityLevel.P0, PriorityLevel.P1):
            return False
        if not record.group_key:
            return False
        existing = self._groups.get(record.group_key)
        return existing is not None and not existing.flushed

    def get_pending_groups(self) -> list[GroupedNotification]:
        """All unflushed, non-empty groups."""
        return [g for g in self._groups.values() if not g.flushed and g.records]

    def get_ready_groups(self, min_items: int | None = None) -> list[GroupedNotification]:
        """Pending groups with at least ``min_items`` records (default 2)."""
        threshold = self.config.min_ready_items if min_items is None else min_items
        return [g for g in self.get_pending_groups() if len(g.records) >= threshold]

    def generate_summary(self, group: GroupedNotification) -> GroupSummary:
        """Collapse a group into one message."""
        created = [r.created_at for r in group.records]
        return GroupSummary(
            group_key=group.group_key,
            category=group.category,
            priority=group.priority,
            title=self._title(group.category, len(group.records)),
            body=self._group_body(group.records),
            count=len(group.records),
            oldest_at=min(created),
            newest_at=max(created),
        )

    def flush(self, group_key: str) -> bool:
        """
        Mark a group as flushed (sent as summary).

        Returns:
            True if the group exists
        """
        group = self._groups.get(group_key)
        if group is None:
            return False
        group.flushed = True
        return True

    def generate_batch_digest(self, records: Iterable[NotificationRecord]) -> list[GroupSummary]:
        """
        Build per-category digest entries from a set of records.

        Sorted by priority (most urgent first), then by count descending.
        """
        by_category: dict[str, list[NotificationRecord]] = {}
        for record in records:
            by_category.setdefault(record.category, []).append(record)

        digests = []
        for category, cat_records in by_category.items():
            created = [r.created_at for r in cat_records]
            highest = PriorityLevel.P4
            for record in cat_records:
                highest = highest.higher(record.priority)

            digests.append(
                GroupSummary(
                    group_key=f"digest:{category}",
                    category=category,
                    priority=highest,
                    title=self._title(category, len(cat_records)),
                    body=self._digest_body(cat_records),
                    count=len(cat_records),
                    oldest_at=min(created),
                    newest_at=max(created),
                )
            )

        digests.sort(key=lambda d: (d.priority.ordinal, -d.count))
        return digests

    def get_auto_resolve_candidates(
        self,
        records: Iterable[NotificationRecord],
        now: datetime,
    ) -> AutoResolveResult:
        """
        Find records older than their priority's auto-resolve timeout.

        P0/P1 never auto-resolve.
        """
        resolved = []
        for record in records:
            minutes = self.config.auto_resolve_minutes.get(record.priority)
            if minutes is None or minutes == float("inf"):
                continue
            if now - record.created_at > timedelta(minutes=minutes):
                resolved.append(record)
        return AutoResolveResult(resolved=resolved)

    def discard(self, record_ids: Iterable[str]) -> int:
        """
        Drop records from pending groups; groups left empty are removed.

        Returns:
            Number of records dropped
        """
        ids = set(record_ids)
        dropped = 0
        for key in list(self._groups):
            group = self._groups[key]
            kept = [r for r in group.records if r.id not in ids]
            dropped += len(group.records) - len(kept)
            if not kept:
                del self._groups[key]
            elif len(kept) != len(group.records):
                group.records = kept
                group.priority = PriorityLevel.P4
                for record in kept:
                    group.priority = group.priority.higher(record.priority)
        return dropped

    def cleanup(self, now: datetime, max_age: timedelta | None = None) -> int:
        """
        Remove flushed groups not updated within ``max_age`` (default 24h).

        Returns:
            Number of groups removed
        """
        if max_age is None:
            max_age = timedelta(hours=self.config.retention_hours)
        cutoff = now - max_age

        stale = [k for k, g in self._groups.items() if g.flushed and g.updated_at < cutoff]
        for key in stale:
            del self._groups[key]

        if stale:
            logger.debug("Purged %d flushed group(s)", len(stale))
        return len(stale)

    def get_group(self, group_key: str) -> GroupedNotification | None:
        return self._groups.get(group_key)

    @property
    def size(self) -> int:
        """Total tracked groups, flushed or not."""
        return len(self._groups)

    # =========================================================================
    # Formatting
    # =========================================================================

    def _title(self, category: str, count: int) -> str:
        label = self.policies.label(category)
        if count == 1:
            return label
        return f"{count} {label} Notifications"

    def _group_body(self, records: list[NotificationRecord]) -> str:
        if len(records) == 1:
            return records[0].body
        lines = [f"  - {_snippet(r.title)}" for r in records[:MAX_SHOWN]]
        return "\n".join(_overflow(lines, len(records)))

    def _digest_body(self, records: list[NotificationRecord]) -> str:
        lines = [f"  - [{r.priority.value}] {_snippet(r.title)}" for r in records[:MAX_SHOWN]]
        return "\n".join(_overflow(lines, len(records)))
