"""
ARI Triage Test Suite - Shared Fixtures and Configuration

Factories, fakes and fixed reference times live in tests/factories.py.
"""

import os

import pytest

from ari_triage.core.config import TriageSettings, reset_settings
from ari_triage.core.logging import reset_logging
from ari_triage.triage.config import TriageConfig
from ari_triage.triage.engagement import EngagementStore
from ari_triage.triage.pipeline import create_pipeline
from ari_triage.triage.policies import CategoryPolicyTable
from tests.factories import RecordingAudit, RecordingSink


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Strip ARI_ variables and reset cached settings and loggers around each test."""
    for key in list(os.environ):
        if key.startswith("ARI_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def policies() -> CategoryPolicyTable:
    return CategoryPolicyTable()


@pytest.fixture
def triage_config() -> TriageConfig:
    return TriageConfig()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def audit() -> RecordingAudit:
    return RecordingAudit()


@pytest.fixture
def engagement_path(tmp_path):
    return tmp_path / "cache" / "engagement.json"


@pytest.fixture
def pipeline(sink, audit, engagement_path):
    """Pipeline with default config, recording sinks and a temp engagement file."""
    return create_pipeline(
        TriageSettings(),
        delivery=sink,
        audit=audit,
        engagement_store=EngagementStore(engagement_path),
    )
