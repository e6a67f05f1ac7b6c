"""Structured process logging for the TraceLayer extraction engine."""

import logging
import sys
from typing import Any

# Fields promoted from `extra` into the structured line when present
CONTEXT_FIELDS = ("run_id", "project_id", "agent", "stage")


class StructuredFormatter(logging.Formatter):
    """Render records as one `key=value` line, traceback appended."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        fields.update(
            (name, getattr(record, name)) for name in CONTEXT_FIELDS if hasattr(record, name)
        )
        fields.update(getattr(record, "extra_data", None) or {})

        line = " ".join(f"{key}={value}" for key, value in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _configured_level() -> int:
    """LOG_LEVEL if set, else DEBUG in dev and INFO elsewhere."""
    try:
        from app.core.config import get_settings

        settings = get_settings()
    except Exception:
        # Settings can be incomplete at import time (e.g. before test env setup)
        return logging.INFO

    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO
    return logging.DEBUG if settings.ENGINE_ENV == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger writing structured lines to stdout.

    The handler is attached once per logger name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_configured_level())

    return logger
