"""Fixtures for CLI interface tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from trellis.cli import cli


@pytest.fixture
def run_cli(cli_runner: CliRunner, workspace_root: Path):  # type: ignore[no-untyped-def]
    """Invoke the CLI with ``-w <workspace_root>`` appended where it applies."""

    def _run(*args: str, workspace: bool = True):  # type: ignore[no-untyped-def]
        argv = list(args)
        if workspace:
            argv += ["-w", str(workspace_root)]
        return cli_runner.invoke(cli, argv)

    return _run
