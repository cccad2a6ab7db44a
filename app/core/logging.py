"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, coloured one-liners in development
- Every record can carry conversation context (user, state, receipt hash)
- WhatsApp numbers are masked in production output
- Third-party clients (Twilio over httpx, Mongo, OpenAI) kept at WARNING
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Dict, Optional

from app.core.config import settings

CONTEXT_FIELDS = ("user_id", "state", "receipt_hash", "outcome")

QUIET_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "openai", "uvicorn.access")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

_PHONE = re.compile(r"(\+?\d{3})\d+(\d{4})")


def mask_identity(value: str) -> str:
    """
    "whatsapp:+263771234567" -> "whatsapp:+263*****4567"
    """
    return _PHONE.sub(lambda m: f"{m.group(1)}*****{m.group(2)}", str(value))


def _context(record: logging.LogRecord) -> Dict[str, str]:
    return {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line, for the log shipper.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_identity(record.getMessage()),
            "module": record.module,
            "line": record.lineno,
        }
        for key, value in _context(record).items():
            entry[key] = mask_identity(value) if key == "user_id" else value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}[{timestamp}] {record.levelname:<8}{RESET} {record.name}: {record.getMessage()}"

        context = _context(record)
        if context:
            line += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Installs a single stdout handler on the root logger.

    Args:
        level: Overrides LOG_LEVEL (e.g. "DEBUG")

    Returns:
        The application's root logger ("agribot")
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("agribot")
    logger.info(f"Logging configured ({settings.ENVIRONMENT}, level={settings.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger under the "agribot" namespace.

    Args:
        name: Usually __name__
    """
    return logging.getLogger(f"agribot.{name}")


class LogContext:
    """
    Adds context fields to every record created inside the block.

    Usage:
        with LogContext(user_id="whatsapp:+263...", state="awaiting-receipt"):
            logger.info("Processing receipt")

    Blocks nest; the inner block's fields win and the outer ones come back on exit.
    """

    def __init__(self, **fields):
        self.fields = fields
        self._previous = None

    def __enter__(self):
        self._previous = logging.getLogRecordFactory()
        previous = self._previous
        fields = self.fields

        def factory(*args, **kwargs):
            record = previous(*args, **kwargs)
            for key, value in fields.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self._previous)
