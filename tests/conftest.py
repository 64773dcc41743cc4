"""Shared pytest fixtures for trellis tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from trellis.config import ServerConfig
from trellis.mcp_server import Dispatcher
from trellis.mcp_tools.common import ToolContext
from trellis.workspace import LocalFileSystem, LocalWorkspace


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """An empty workspace directory."""
    root = tmp_path / "ws"
    root.mkdir()
    return root


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig()


@pytest.fixture
def tool_ctx(workspace_root: Path, config: ServerConfig) -> ToolContext:
    return ToolContext(workspace=LocalWorkspace([workspace_root]), fs=LocalFileSystem(), config=config)


@pytest.fixture
def dispatcher(tool_ctx: ToolContext) -> Dispatcher:
    return Dispatcher(tool_ctx)


@pytest.fixture
def empty_dispatcher(config: ServerConfig) -> Dispatcher:
    """Dispatcher whose host has no workspace folder open."""
    return Dispatcher(ToolContext(workspace=LocalWorkspace([]), fs=LocalFileSystem(), config=config))


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_trellis_logger() -> Generator[None, None, None]:
    """Drop file handlers added by setup_logging between tests."""
    yield
    logger = logging.getLogger("trellis")
    for handler in logger.handlers[:]:
        if isinstance(handler, logging.NullHandler):
            continue
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
