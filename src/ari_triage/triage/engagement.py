"""
Engagement Persistence.

Stores the scorer's learned per-category engagement as JSON so that
feedback survives restarts.

File format:
    {
        "security": {"score": 0.62, "positive": 4, "negative": 1},
        ...
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..core.logging import get_logger

logger = get_logger(__name__)


class EngagementStore:
    """JSON file holding exported engagement state."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> dict[str, Any]:
        """
        Load engagement state from disk.

        Missing files yield an empty state. Corrupt files are logged and
        also yield an empty state.
        """
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load engagement state from %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Engagement state in %s is not a mapping, ignoring", self.path)
            return {}
        return data

    def save(self, data: dict[str, Any]) -> None:
        """
        Write engagement state to disk.

        Writes to a sibling temp file first so a crash never leaves a
        truncated file behind.

        Raises:
            OSError: If the file cannot be written
        """
        self._ensure_dir()
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)
        logger.debug("Saved engagement for %d categories to %s", len(data), self.path)
