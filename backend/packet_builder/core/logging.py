"""Logging utilities for Packet Builder.

Log lines are JSON objects by default. Packet code attaches identifiers
(record, attachment, job, actor) through :func:`log_context`, and the
formatter gathers them under a single ``context`` key.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

CONTEXT_PREFIX = "ctx_"
_DEFAULT_LEVEL = os.environ.get("PKTB_LOG_LEVEL", "INFO")
_DEFAULT_FORMAT = os.environ.get("PKTB_LOG_FORMAT", "json")
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = record_context(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Collect ``ctx_*`` extras from a log record, prefix stripped."""
    return {
        key[len(CONTEXT_PREFIX):]: value
        for key, value in record.__dict__.items()
        if key.startswith(CONTEXT_PREFIX)
    }


def configure_logging(level: str | int = _DEFAULT_LEVEL, fmt: str = _DEFAULT_FORMAT) -> None:
    """Install a single stdout handler on the root logger."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    root.handlers = [handler]


def get_logger(name: str = "packet_builder") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def log_context(**values: Any) -> dict[str, Any]:
    """Build an ``extra=`` mapping; ``None`` values are left out."""
    return {f"{CONTEXT_PREFIX}{key}": value for key, value in values.items() if value is not None}


__all__ = ["JsonFormatter", "configure_logging", "get_logger", "log_context", "record_context"]
