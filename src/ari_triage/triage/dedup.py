"""
Dedup Window.

Suppresses repeats of the same source/title within a time window. The key
only looks at a title prefix, so distinct titles sharing their first 50
characters collide on purpose.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta

TITLE_PREFIX_LENGTH = 50
KEY_LENGTH = 12


def compute_dedup_key(source: str, title: str) -> str:
    """md5 of ``source:title[:50]``, truncated to 12 hex characters."""
    raw = f"{source}:{title[:TITLE_PREFIX_LENGTH]}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()[:KEY_LENGTH]


@dataclass
class DedupWindow:
    """
    Tracks when each dedup key was last seen.

    A key is a duplicate while ``now - last_seen < window``. Entries older
    than twice the window are evicted by ``cleanup_expired``.
    """

    window_minutes: float = 15.0
    _last_seen: dict[str, datetime] = field(default_factory=dict)

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)

    def is_duplicate(self, key: str, now: datetime) -> bool:
        """
        Check if a key was seen inside the window.

        Args:
            key: Dedup key
            now: Reference time

        Returns:
            True if the notification should be suppressed
        """
        last = self._last_seen.get(key)
        if last is None:
            return False
        return now - last < self.window

    def seen_within(self, key: str, now: datetime, horizon: timedelta) -> bool:
        """Check if a key was seen within an arbitrary horizon."""
        last = self._last_seen.get(key)
        if last is None:
            return False
        return now - last < horizon

    def mark_seen(self, key: str, now: datetime) -> None:
        """Record that a key was admitted at ``now``."""
        self._last_seen[key] = now

    def cleanup_expired(self, now: datetime) -> int:
        """
        Remove entries older than 2x the window to bound memory.

        Returns:
            Number of entries removed
        """
        cutoff = now - self.window * 2
        expired_keys = [key for key, ts in self._last_seen.items() if ts < cutoff]
        for key in expired_keys:
            del self._last_seen[key]

        return len(expired_keys)

    def clear(self) -> None:
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._last_seen)
