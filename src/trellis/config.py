"""Server configuration.

Config lives at ``<workspace>/.trellis/config.json`` unless an explicit path
is given.  ``host``, ``port``, ``max_connections`` and ``enable_cors`` are
accepted and stored for compatibility with existing client setups, but the
stdio transport never reads them: nothing listens on a socket.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TRELLIS_DIR_NAME = ".trellis"
CONFIG_FILENAME = "config.json"

DEFAULT_PORT = 3001
DEFAULT_HOST = "localhost"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_MAX_CONNECTIONS = 10
DEFAULT_MAX_SEARCH_RESULTS = 100
VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})


@dataclass
class ServerConfig:
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    log_level: str = DEFAULT_LOG_LEVEL
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    enable_cors: bool = True
    auto_start: bool = True
    skip_unreadable: bool = True
    max_search_results: int = DEFAULT_MAX_SEARCH_RESULTS
    search_exclude_dirs: list[str] = field(default_factory=lambda: ["node_modules"])
    max_list_depth: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def default_config_path(root: Path) -> Path:
    return root / TRELLIS_DIR_NAME / CONFIG_FILENAME


def _backup_corrupt_config(path: Path) -> None:
    """Back up a corrupt config before callers overwrite it with defaults."""
    backup_path = path.parent / (path.name + ".bak")
    try:
        shutil.copy2(path, backup_path)
    except OSError:
        logger.debug("Could not back up corrupt config to %s", backup_path, exc_info=True)


def _coerce_int(data: dict[str, Any], key: str, default: int, *, lo: int = 1, hi: int | None = None) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        logger.warning("Invalid %s value %r in config; using default %d", key, raw, default)
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r in config; using default %d", key, raw, default)
        return default
    if value < lo or (hi is not None and value > hi):
        logger.warning("%s %d out of range in config; using default %d", key, value, default)
        return default
    return value


def _coerce_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    raw = data.get(key, default)
    if not isinstance(raw, bool):
        logger.warning("Invalid %s value %r in config; using default %s", key, raw, default)
        return default
    return raw


def read_server_config(path: Path) -> ServerConfig:
    """Read a config file. Returns defaults if missing or invalid."""
    if not path.exists():
        return ServerConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        _backup_corrupt_config(path)
        logger.warning("Corrupt config %s: %s; backed up to .bak", path, exc)
        return ServerConfig()

    if not isinstance(data, dict):
        _backup_corrupt_config(path)
        logger.warning("Config %s is not a JSON object; backed up to .bak, using defaults", path)
        return ServerConfig()

    host = data.get("host", DEFAULT_HOST)
    if not isinstance(host, str) or not host:
        logger.warning("Invalid host value %r in config; using default %s", host, DEFAULT_HOST)
        host = DEFAULT_HOST

    log_level = str(data.get("log_level", DEFAULT_LOG_LEVEL)).lower()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning("Unknown log_level %r in config; using default %s", log_level, DEFAULT_LOG_LEVEL)
        log_level = DEFAULT_LOG_LEVEL

    raw_excludes = data.get("search_exclude_dirs", ["node_modules"])
    if not isinstance(raw_excludes, list) or not all(isinstance(d, str) for d in raw_excludes):
        logger.warning("Invalid search_exclude_dirs %r in config; using default", raw_excludes)
        raw_excludes = ["node_modules"]

    max_list_depth: int | None = None
    if data.get("max_list_depth") is not None:
        max_list_depth = _coerce_int(data, "max_list_depth", 0) or None

    return ServerConfig(
        port=_coerce_int(data, "port", DEFAULT_PORT, hi=65535),
        host=host,
        log_level=log_level,
        max_connections=_coerce_int(data, "max_connections", DEFAULT_MAX_CONNECTIONS),
        enable_cors=_coerce_bool(data, "enable_cors", True),
        auto_start=_coerce_bool(data, "auto_start", True),
        skip_unreadable=_coerce_bool(data, "skip_unreadable", True),
        max_search_results=_coerce_int(data, "max_search_results", DEFAULT_MAX_SEARCH_RESULTS),
        search_exclude_dirs=list(raw_excludes),
        max_list_depth=max_list_depth,
    )


def write_server_config(path: Path, config: ServerConfig) -> None:
    """Write a config file atomically via temp file + os.replace()."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(config.to_dict(), indent=2) + "\n"
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
