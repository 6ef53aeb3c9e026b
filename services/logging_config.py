from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from services import config


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra={"extra_fields": {...}}` is merged in."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)
        return json.dumps(log_obj, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger (idempotent)."""
    level_str = (level or config.LOG_LEVEL).upper()
    fmt = (log_format or config.LOG_FORMAT).lower()
    lvl = logging.getLevelName(level_str)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())

    root = logging.getLogger()
    root.setLevel(lvl)
    root.handlers = [handler]
    root.info("Logging configured: level=%s, format=%s", level_str, fmt)
