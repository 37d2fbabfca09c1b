"""Logging configuration.

Development gets a plain single-line format; production emits one JSON object
per line so log aggregators can parse it.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from quotegen.core.config import get_settings

_HANDLER_NAME = "quotegen-stdout"


class JSONFormatter(logging.Formatter):
    """Structured formatter used outside development."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging() -> None:
    """Attach the stdout handler to the package logger (idempotent)."""

    settings = get_settings()
    logger = logging.getLogger("quotegen")
    logger.setLevel(settings.log_level.upper())

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    if settings.app_env == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
    logger.addHandler(handler)
