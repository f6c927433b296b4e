"""
Delivery and Audit Sink Protocols.

Defines the interfaces the pipeline delivers through. Concrete channels
(chat push, SMS gateway, event bus) live outside this package and only
need to satisfy these protocols.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from ..core.logging import get_logger
from .models import PriorityLevel

logger = get_logger(__name__)

# Urgency tag handed to delivery sinks per priority level
URGENCY_TAGS: dict[PriorityLevel, str] = {
    PriorityLevel.P0: "critical",
    PriorityLevel.P1: "high",
    PriorityLevel.P2: "normal",
    PriorityLevel.P3: "low",
    PriorityLevel.P4: "silent",
}


def urgency_tag(priority: PriorityLevel) -> str:
    return URGENCY_TAGS[priority]


# =============================================================================
# Delivery
# =============================================================================


@runtime_checkable
class DeliverySink(Protocol):
    """
    Protocol for immediate delivery channels.

    Implementations may raise; the pipeline catches and logs any exception
    and reports the notification as not delivered.
    """

    def deliver(self, title: str, body: str, urgency: str) -> None:
        """
        Send one message.

        Args:
            title: Message title
            body: Message body
            urgency: Urgency tag (critical, high, normal, low, silent)
        """
        ...


class LoggingDeliverySink:
    """Delivery sink that writes messages to the log instead of a channel."""

    def deliver(self, title: str, body: str, urgency: str) -> None:
        logger.info("[%s] %s: %s", urgency, title, body)


# =============================================================================
# Audit
# =============================================================================


@runtime_checkable
class AuditSink(Protocol):
    """
    Protocol for the audit trail.

    Receives one event per processed notification:
        {"action": "notification:processed", "details": {...}}
    """

    def record(self, event: dict[str, Any]) -> None:
        """Record one audit event."""
        ...


class LoggingAuditSink:
    """Audit sink that emits each event as a JSON log line."""

    def record(self, event: dict[str, Any]) -> None:
        logger.info(json.dumps(event, default=str, sort_keys=True))
