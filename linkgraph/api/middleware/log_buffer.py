"""In-memory buffer of recent log records for the diagnostics route."""

from __future__ import annotations

from collections import deque
from datetime import datetime
import logging
from typing import Any, Deque, Dict

LOG_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=200)

_STANDARD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class MemoryLogHandler(logging.Handler):
    """Capture records, including their ``extra`` fields, into ``LOG_BUFFER``."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            extra = {
                key: value
                for key, value in record.__dict__.items()
                if key not in _STANDARD_ATTRS
            }
            LOG_BUFFER.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": self.format(record),
                    "extra": extra,
                }
            )
        except Exception:
            self.handleError(record)


def install_log_buffer(logger_name: str = "linkgraph", level: int = logging.INFO) -> MemoryLogHandler:
    """Attach the buffer handler once to the package logger."""
    target = logging.getLogger(logger_name)
    for handler in target.handlers:
        if isinstance(handler, MemoryLogHandler):
            return handler

    handler = MemoryLogHandler(level=level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    target.addHandler(handler)
    if target.level == logging.NOTSET or target.level > level:
        target.setLevel(level)
    return handler


__all__ = ["LOG_BUFFER", "MemoryLogHandler", "install_log_buffer"]
