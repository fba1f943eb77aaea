"""Structured logging setup for pixreduce."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, Literal

import numpy as np


LogFormat = Literal["json", "text"]

_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, sort_keys=True, default=_jsonable)


class KeyValueFormatter(logging.Formatter):
    """Emit `level logger message key=value ...` lines for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        fields = _extra_fields(record)
        fields.pop("event", None)
        parts = [record.levelname, record.name, record.getMessage()]
        parts.extend(f"{key}={fields[key]}" for key in sorted(fields))
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO", fmt: LogFormat = "json") -> logging.Logger:
    """Configure and return the root pixreduce logger.

    The handler is installed once; later calls only adjust level and format.
    """

    logger = logging.getLogger("pixreduce")
    formatter: logging.Formatter = JsonFormatter() if fmt == "json" else KeyValueFormatter()
    if logger.handlers:
        for handler in logger.handlers:
            handler.setFormatter(formatter)
        logger.setLevel(level.upper())
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger


def get_logger(name: str = "pixreduce") -> logging.Logger:
    """Return a logger under the pixreduce namespace.

    Library code never installs handlers; hosts call `configure_logging`.
    """

    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit a structured event log line."""

    if logger.isEnabledFor(level):
        logger.log(level, event, extra={"event": event, **fields})
