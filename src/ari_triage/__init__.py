"""
ARI Triage - Notification triage for a single recipient

Decides how urgent each internally generated notification is, whether it
repeats something already seen, and whether to push it now, batch it into
a digest, or only log it.

Usage:
    from ari_triage import NotificationInput, create_pipeline

    pipeline = create_pipeline(delivery=my_sink)
    outcome = pipeline.process(
        NotificationInput(source="budget-monitor", title="80% of budget used",
                          category="budget")
    )

Package structure:
    ari_triage/
    ├── core/           # Shared infrastructure
    │   ├── config.py   # Environment settings
    │   └── logging.py  # Structured logging
    └── triage/         # Scoring, dedup, routing, grouping, pipeline
"""

__version__ = "1.0.0"

from .triage import (
    NotificationInput,
    NotificationOutcome,
    NotificationPipeline,
    PriorityLevel,
    create_pipeline,
)

__all__ = [
    "__version__",
    "NotificationInput",
    "NotificationOutcome",
    "NotificationPipeline",
    "PriorityLevel",
    "create_pipeline",
]
