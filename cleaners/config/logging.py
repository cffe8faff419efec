"""
Logging setup for the Cleaners API and scripts.

``CLEANERS_LOG_FORMAT=json`` switches to one JSON object per line for log
shippers; anything else gives plain console lines. Fields passed through
``extra=`` (``session_id``, ``request_id`` ...) are appended either way.

Usage:
    from cleaners.config.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Turn completed", extra={"session_id": session_id})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

LOG_LEVEL = os.getenv("CLEANERS_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("CLEANERS_LOG_FORMAT", "console")  # "console" or "json"

# SDK and driver loggers that are chatty at INFO
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "qdrant_client",
    "openai",
    "anthropic",
    "sqlalchemy.engine",
)

# Attributes every LogRecord carries; anything else came from ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [key=value, ...]``"""

    def format(self, record: logging.LogRecord) -> str:
        extras = ", ".join(f"{k}={v}" for k, v in _extra_fields(record).items())
        line = (
            f"{self.formatTime(record, '%H:%M:%S')} {record.levelname:<8} "
            f"{record.name}: {record.getMessage()}"
        )
        if extras:
            line = f"{line} [{extras}]"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record; Korean text is kept unescaped."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extra_fields(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


_configured = False


def configure_logging() -> None:
    """Install a single stdout handler on the root logger. Idempotent."""
    global _configured
    if _configured:
        return

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if LOG_FORMAT == "json" else ConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` after making sure logging is configured."""
    configure_logging()
    return logging.getLogger(name)


def log_banner(logger: logging.Logger, title: str, char: str = "=", width: int = 60) -> None:
    """Log ``title`` between two rules, for script section headers."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)


def log_kv(logger: logging.Logger, key: str, value: Any, indent: int = 2) -> None:
    """Log an indented ``key: value`` line; ints get thousands separators."""
    shown = f"{value:,}" if isinstance(value, int) and not isinstance(value, bool) else value
    logger.info("%s%s: %s", " " * indent, key, shown)


__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "get_logger",
    "configure_logging",
    "log_banner",
    "log_kv",
    "LOG_LEVEL",
    "LOG_FORMAT",
]
