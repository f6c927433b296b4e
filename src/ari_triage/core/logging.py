"""
ARI Triage Logging

One shared stderr handler for every ``ari_triage.*`` logger. Records about
a single notification carry its triage fields (``notification_id``,
``priority``, ``channel``, ``score``) via ``extra=``; the formatter renders
them as a trailing tag in text mode and as top-level keys in JSON mode.

Usage:
    from ari_triage.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info(
        "Notification routed",
        extra={"notification_id": "3f2a9c1e", "priority": "P2", "channel": "push"},
    )

Environment Variables:
    ARI_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR)
    ARI_DEBUG: Legacy - if set, enables DEBUG level
    ARI_LOG_JSON: If set, output one JSON object per line
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

# Rendered in this order when present on a record
TRIAGE_FIELDS = ("notification_id", "priority", "channel", "score")

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class TriageFormatter(logging.Formatter):
    """
    Text or JSON lines.

    Text: ``[ARI INFO] [pipeline] message {notification_id=... priority=P2}``
    JSON: record time (UTC), level, logger, message, then every extra field.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        if self.json_output:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        module = record.name.rsplit(".", 1)[-1]
        msg = f"[ARI {record.levelname}] [{module}] {record.getMessage()}"

        extras = _extras(record)
        tags = [f"{key}={extras[key]}" for key in TRIAGE_FIELDS if key in extras]
        if tags:
            msg += " {" + " ".join(tags) + "}"

        if record.exc_info:
            msg += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return msg

    def _format_json(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_extras(record))

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        # Datetimes and enums in extras fall back to str()
        return json.dumps(log_data, default=str)


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None


def _get_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(TriageFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger at the configured level, writing to the shared handler
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(get_settings().log_level_int)
    logger.addHandler(_get_handler())
    logger.propagate = False

    _loggers[name] = logger
    return logger


def reset_logging() -> None:
    """
    Detach the shared handler and let ari_triage loggers propagate again.

    Levels go back to NOTSET so pytest's caplog sees every record. Loggers
    stay cached; the next get_logger() for a new name builds a fresh handler
    from current settings.
    """
    global _handler

    manager = logging.Logger.manager
    for name, entry in list(manager.loggerDict.items()):
        if (name == "ari_triage" or name.startswith("ari_triage.")) and isinstance(
            entry, logging.Logger
        ):
            entry.propagate = True
            entry.setLevel(logging.NOTSET)

    if _handler is not None:
        for logger in _loggers.values():
            logger.removeHandler(_handler)
    _handler = None
