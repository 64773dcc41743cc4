"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import threading
from pathlib import Path

from trellis.logging import setup_logging


def _file_handlers(logger: logging.Logger) -> list[logging.handlers.RotatingFileHandler]:
    return [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]


def _records(log_dir: Path) -> list[dict]:
    return [json.loads(line) for line in (log_dir / "trellis.log").read_text().splitlines() if line]


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("test_message", extra={"tool": "read_file", "args_data": {"path": "a.txt"}})
        for handler in logger.handlers:
            handler.flush()
        record = _records(tmp_path)[0]
        assert record["msg"] == "test_message"
        assert record["level"] == "INFO"
        assert record["tool"] == "read_file"
        assert record["args"]["path"] == "a.txt"

    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "ws" / ".trellis"
        setup_logging(log_dir)
        assert log_dir.is_dir()

    def test_json_format(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("formatted", extra={"tool": "search_files", "duration_ms": 42.5})
        for handler in logger.handlers:
            handler.flush()
        assert _records(tmp_path)[-1]["duration_ms"] == 42.5

    def test_exception_recorded(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        try:
            raise ValueError("kaboom")
        except ValueError:
            logger.error("tool_error", extra={"tool": "read_file", "error": "kaboom"}, exc_info=True)
        for handler in logger.handlers:
            handler.flush()
        record = _records(tmp_path)[-1]
        assert record["error"] == "kaboom"
        assert record["exception"] == "ValueError: kaboom"

    def test_level_threshold(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path, "warning")
        logger.info("hidden")
        logger.warning("shown")
        for handler in logger.handlers:
            handler.flush()
        assert [r["msg"] for r in _records(tmp_path)] == ["shown"]

    def test_unknown_level_falls_back_to_info(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path, "chatty")
        assert logger.level == logging.INFO

    def test_idempotent_setup(self, tmp_path: Path) -> None:
        logger1 = setup_logging(tmp_path)
        logger2 = setup_logging(tmp_path)
        assert logger1 is logger2
        assert len(_file_handlers(logger1)) == 1

    def test_new_directory_replaces_handler(self, tmp_path: Path) -> None:
        first, second = tmp_path / "first", tmp_path / "second"
        setup_logging(first)
        logger = setup_logging(second)
        handlers = _file_handlers(logger)
        assert len(handlers) == 1
        assert handlers[0].baseFilename == os.path.abspath(str(second / "trellis.log"))

    def test_no_duplicate_handlers_via_symlink(self, tmp_path: Path) -> None:
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link_dir = tmp_path / "link"
        os.symlink(str(real_dir), str(link_dir))
        logger1 = setup_logging(link_dir)
        logger2 = setup_logging(link_dir)
        assert logger1 is logger2
        assert len(_file_handlers(logger1)) == 1

    def test_no_duplicate_handlers_under_concurrency(self, tmp_path: Path) -> None:
        results: list[logging.Logger] = []
        barrier = threading.Barrier(4)

        def call_setup() -> None:
            barrier.wait()
            results.append(setup_logging(tmp_path))

        threads = [threading.Thread(target=call_setup) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 4
        assert all(r is results[0] for r in results)
        assert len(_file_handlers(logging.getLogger("trellis"))) == 1

    def test_child_loggers_reach_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logging.getLogger("trellis.mcp_server").info("tool_call", extra={"tool": "list_files"})
        for handler in logger.handlers:
            handler.flush()
        record = _records(tmp_path)[-1]
        assert record["tool"] == "list_files"
        assert record["logger"] == "trellis.mcp_server"

    def test_unset_extras_omitted(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("plain")
        for handler in logger.handlers:
            handler.flush()
        record = _records(tmp_path)[-1]
        assert set(record) == {"ts", "level", "logger", "msg"}

    def test_non_ascii_kept_readable(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("tool_call", extra={"args_data": {"path": "héllo.txt"}})
        for handler in logger.handlers:
            handler.flush()
        assert "héllo.txt" in (tmp_path / "trellis.log").read_text(encoding="utf-8")
