"""CLI for trellis.

Usage:
    trellis serve                            # Serve MCP on stdio (workspace = cwd)
    trellis serve -w ../proj -w ../lib       # First root resolves tool paths
    trellis tools                            # List the tool catalog
    trellis call read_file '{"path": "README.md"}'
    trellis info                             # Workspace information
    trellis status                           # Configuration summary
    trellis config init                      # Write a default .trellis/config.json
"""

from __future__ import annotations

import asyncio
import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click

from trellis import __version__
from trellis.config import ServerConfig, default_config_path, read_server_config, write_server_config
from trellis.errors import ToolError
from trellis.mcp_server import Dispatcher, list_tools, run_stdio
from trellis.mcp_tools.common import ToolContext
from trellis.workspace import LocalFileSystem, LocalWorkspace

_workspace_option = click.option(
    "--workspace",
    "-w",
    "workspaces",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (repeatable; default: current directory)",
)
_config_option = click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: <workspace>/.trellis/config.json)",
)


def _roots(workspaces: tuple[Path, ...]) -> list[Path]:
    return list(workspaces) or [Path.cwd()]


def _config_path(roots: list[Path], config_path: Path | None) -> Path:
    return config_path or default_config_path(roots[0].resolve())


def _dispatcher(roots: list[Path], config_path: Path | None, active_file: Path | None = None) -> Dispatcher:
    config = read_server_config(_config_path(roots, config_path))
    ctx = ToolContext(workspace=LocalWorkspace(roots, active_file=active_file), fs=LocalFileSystem(), config=config)
    return Dispatcher(ctx)


@click.group()
@click.version_option(version=__version__, prog_name="trellis")
def cli() -> None:
    """Trellis: workspace file tools over MCP."""


@cli.command()
@_workspace_option
@_config_option
@click.option(
    "--active-file",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="File reported as the active editor",
)
def serve(workspaces: tuple[Path, ...], config_path: Path | None, active_file: Path | None) -> None:
    """Serve the MCP tools on stdin/stdout."""
    asyncio.run(run_stdio(_roots(workspaces), config_path=config_path, active_file=active_file))


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tools(as_json: bool) -> None:
    """List the tool catalog."""
    catalog = list_tools()
    if as_json:
        click.echo(json_mod.dumps([t.model_dump(by_alias=True, exclude_none=True) for t in catalog], indent=2))
        return
    for tool in catalog:
        required = set(tool.inputSchema.get("required", []))
        params = ", ".join(f"{name}{'' if name in required else '?'}" for name in tool.inputSchema.get("properties", {}))
        click.echo(f"{tool.name}({params})")
        click.echo(f"    {tool.description}")


@cli.command()
@click.argument("name")
@click.argument("arguments", default="{}")
@_workspace_option
@_config_option
def call(name: str, arguments: str, workspaces: tuple[Path, ...], config_path: Path | None) -> None:
    """Invoke one tool with a JSON object of ARGUMENTS and print the result."""
    try:
        parsed: Any = json_mod.loads(arguments)
    except json_mod.JSONDecodeError as e:
        click.echo(f"Invalid JSON arguments: {e}", err=True)
        sys.exit(1)
    if not isinstance(parsed, dict):
        click.echo("Arguments must be a JSON object", err=True)
        sys.exit(1)

    dispatcher = _dispatcher(_roots(workspaces), config_path)
    try:
        result = asyncio.run(dispatcher.dispatch(name, parsed))
    except ToolError as e:
        click.echo(f"Error: {e.describe()}", err=True)
        sys.exit(1)
    for block in result:
        click.echo(block.text)


@cli.command()
@_workspace_option
@_config_option
@click.option(
    "--active-file",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="File reported as the active editor",
)
def info(workspaces: tuple[Path, ...], config_path: Path | None, active_file: Path | None) -> None:
    """Show workspace information (same as the get_workspace_info tool)."""
    dispatcher = _dispatcher(_roots(workspaces), config_path, active_file)
    result = asyncio.run(dispatcher.dispatch("get_workspace_info", {}))
    click.echo(result[0].text)


@cli.command()
@_workspace_option
@_config_option
def status(workspaces: tuple[Path, ...], config_path: Path | None) -> None:
    """Show the server configuration summary."""
    path = _config_path(_roots(workspaces), config_path)
    config = read_server_config(path)
    click.echo("Trellis MCP server")
    click.echo(f"  Config: {path}{'' if path.exists() else ' (not found, using defaults)'}")
    click.echo(f"  Host: {config.host}")
    click.echo(f"  Port: {config.port}")
    click.echo(f"  Auto Start: {'Enabled' if config.auto_start else 'Disabled'}")
    click.echo(f"  Log Level: {config.log_level}")
    click.echo("  Transport: stdio (host, port, max_connections and enable_cors are not used)")


@cli.group()
def config() -> None:
    """Manage the server configuration file."""


@config.command("init")
@_workspace_option
@_config_option
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def config_init(workspaces: tuple[Path, ...], config_path: Path | None, force: bool) -> None:
    """Write the default configuration."""
    path = _config_path(_roots(workspaces), config_path)
    if path.exists() and not force:
        click.echo(f"{path} already exists (use --force to overwrite)")
        return
    write_server_config(path, ServerConfig())
    click.echo(f"Wrote {path}")


@config.command("show")
@_workspace_option
@_config_option
def config_show(workspaces: tuple[Path, ...], config_path: Path | None) -> None:
    """Print the effective configuration as JSON."""
    path = _config_path(_roots(workspaces), config_path)
    click.echo(json_mod.dumps(read_server_config(path).to_dict(), indent=2))


if __name__ == "__main__":
    cli()
