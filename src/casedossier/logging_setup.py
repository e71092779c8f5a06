"""
CaseDossier Logging Setup (Structured JSON)

Modules log through ``logging.getLogger(__name__)`` and pass context as
``extra={"doc_id": ..., "stage": ...}``. The CLI installs JSONFormatter
on the package logger so every record is one JSON object per line.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO, Union

PACKAGE_LOGGER = "casedossier"

EXTRA_FIELDS = ("doc_id", "stage", "duration_ms", "catalog_fingerprint", "workers", "error_code")


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Add extra fields if present
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(
    level: Union[str, int] = "INFO",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Install a JSON handler on the package logger.

    Calling it again replaces the previous handler instead of stacking
    a second one.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for existing in list(logger.handlers):
        if getattr(existing, "_casedossier", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter())
    handler._casedossier = True
    logger.addHandler(handler)
    logger.propagate = False
    return logger
