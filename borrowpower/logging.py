"""Logging setup for borrowpower."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Optional

PACKAGE_LOGGER = "borrowpower"


def setup_logging(level: str = "INFO", format_type: str = "standard", stream: Optional[IO[str]] = None) -> None:
    """Attach a single handler to the ``borrowpower`` logger.

    Parameters
    ----------
    level : str
        Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        ``"standard"`` for human readable lines or ``"json"``.
    stream : file-like, optional
        Destination for records, stderr by default.

    Only the package logger is touched, so host applications keep their own
    root configuration. Calling this again replaces the previous handler.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for old in logger.handlers[:]:
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
