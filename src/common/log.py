from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Optional, TextIO


ROOT_LOGGER = "rental_admin"


class ConsoleFormatter(logging.Formatter):
    """Format: [rental_admin.area] HH:MM:SS LEVEL    message"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"[{record.name}] {timestamp} {record.levelname:<8} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(area: str) -> logging.Logger:
    """
    Logger for one area of the client, e.g. "gateway" or "state.store".

    Nothing is configured here; handlers come from `setup_logging` or the host app.
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{area}")


def setup_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach a single console handler to the package root logger. Safe to call twice."""
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    for h in list(root.handlers):
        if getattr(h, "_rental_admin_console", False):
            root.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ConsoleFormatter())
    handler._rental_admin_console = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.propagate = False
    return root


__all__ = ["ConsoleFormatter", "get_logger", "setup_logging"]
