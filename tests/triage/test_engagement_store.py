"""
Tests for engagement persistence.
"""

from __future__ import annotations

import json
import logging

from ari_triage.triage.engagement import EngagementStore


class TestEngagementStore:
    """Tests for EngagementStore."""

    def test_missing_file_is_empty(self, tmp_path):
        assert EngagementStore(tmp_path / "absent.json").load() == {}

    def test_save_creates_parent_and_loads_back(self, tmp_path):
        path = tmp_path / "cache" / "nested" / "engagement.json"
        store = EngagementStore(path)
        data = {"finance": {"score": 0.55, "positive": 1, "negative": 0}}

        store.save(data)

        assert path.exists()
        assert store.load() == data
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_is_empty(self, tmp_path, caplog):
        path = tmp_path / "engagement.json"
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING):
            assert EngagementStore(path).load() == {}
        assert "Could not load engagement state" in caplog.text

    def test_non_mapping_is_empty(self, tmp_path):
        path = tmp_path / "engagement.json"
        path.write_text(json.dumps([1, 2, 3]))
        assert EngagementStore(path).load() == {}
