"""
Logging setup for devbootstrap.

Standard output is reserved for the progress event protocol, so all
diagnostic logging goes to stderr. Two formats are supported:

- json: one JSON object per line (timestamp, level, logger, message)
- text: human readable "[HH:MM:SS] LEVEL logger: message"

Usage:
    from devbootstrap.logger import configure_logging

    configure_logging(level="debug", fmt="json")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

__all__ = ["JsonLogFormatter", "configure_logging", "ROOT_LOGGER_NAME"]

ROOT_LOGGER_NAME = "devbootstrap"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonLogFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(
    level: str = "info",
    fmt: str = "text",
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Configure the devbootstrap logger hierarchy.

    Replaces any handler installed by a previous call so repeated CLI
    invocations in one process (tests) do not duplicate output.

    Args:
        level: debug, info, warning or error
        fmt: json or text
        stream: Destination stream, defaults to stderr

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(_LEVELS.get(level, logging.INFO))

    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s", "%H:%M:%S")
        )
    logger.addHandler(handler)
    return logger
