"""Logging setup driven by the ``log_level`` / ``log_format`` settings."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

PACKAGE_LOGGER = "pci_repository"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: str = "info", fmt: str = "text") -> logging.Logger:
    """Attach a single handler to the package logger, replacing earlier ones."""
    if level not in _LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")

    handler: logging.Handler
    if fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    elif fmt == "text":
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        raise ValueError(f"Unknown log format: {fmt!r}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(_LEVELS[level])
    logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logger
