"""Structured JSON logging for the storefront sync engine.

Fetch outcomes, cart reconciliation and conflicts are logged as
single-line JSON records so sync behaviour can be traced after the fact.
Inventory errors attached to a record contribute their ``error_type`` and
``trace_id``, which match what the CLI prints to the user.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .exceptions import TrackedError

LOGGER_NAME = "storefront"
SYNC_LOGGER_NAME = "storefront.sync"
LOG_FILENAME = "storefront.jsonl"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data is not None:
            entry["data"] = data
        error = record.exc_info[1] if record.exc_info else None
        if error is not None:
            entry["error"] = str(error)
            if isinstance(error, TrackedError):
                entry["error_type"] = error.error_type
                entry["trace_id"] = error.trace_id
        return json.dumps(entry, ensure_ascii=False, default=str)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
) -> logging.Logger:
    """Configure the ``storefront`` logger once per process.

    Records go to ``<log_dir>/storefront.jsonl`` when ``log_dir`` is given;
    warnings and errors are always echoed to stderr. Later calls only
    adjust the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))
    if logger.handlers:
        return logger

    formatter = JSONFormatter()
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stderr_handler = logging.StreamHandler()
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)
    logger.addHandler(stderr_handler)
    return logger


def log_sync_event(event: str, **data: Any) -> None:
    """Log a single sync outcome (fetch result, clamp, conflict...)."""
    logging.getLogger(SYNC_LOGGER_NAME).info(event, extra={"data": data})


__all__ = ["JSONFormatter", "LOGGER_NAME", "log_sync_event", "setup_logging"]
