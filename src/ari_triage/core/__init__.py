"""
ARI Triage Core Module

Shared infrastructure: environment-backed settings and structured logging.
"""

from .config import TriageSettings, get_settings, reset_settings
from .logging import TriageFormatter, get_logger, reset_logging

__all__ = [
    "TriageSettings",
    "get_settings",
    "reset_settings",
    "TriageFormatter",
    "get_logger",
    "reset_logging",
]
