"""Structured JSON logging for trellis.

Writes JSONL to .trellis/trellis.log with rotation (5MB, 3 backups).
Never logs to stdout: stdout carries the MCP protocol.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOG_FILENAME = "trellis.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


# LogRecord attribute -> JSONL key, for the ``extra=`` fields the server passes.
_EXTRA_KEYS = (
    ("tool", "tool"),
    ("args_data", "args"),
    ("duration_ms", "duration_ms"),
    ("error", "error"),
)


class _JsonlFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for attr, key in _EXTRA_KEYS:
            value = getattr(record, attr, None)
            if value is not None:
                entry[key] = value
        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            entry["exception"] = f"{type(exc).__name__}: {exc}"
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(log_dir: Path, level: str = "info") -> logging.Logger:
    """Set up structured JSON logging to <log_dir>/trellis.log.

    Returns the ``trellis`` logger, writing JSONL with rotation.
    """
    logger = logging.getLogger("trellis")
    log_path = log_dir / _LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))

    with _setup_lock:
        logger.setLevel(_LEVELS.get(level.lower(), logging.INFO))
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                return logger
            # Different path: remove the stale handler.
            logger.removeHandler(h)
            h.close()

        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(_JsonlFormatter())
        logger.addHandler(handler)
    return logger
