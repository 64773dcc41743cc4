"""MCP server for trellis workspace tools.

Exposes read/write/list/create/delete/search/info operations on a
workspace directory as MCP tools, served over stdio.

Usage:
    trellis-mcp                                # Workspace = cwd
    trellis-mcp --workspace /path/to/project   # Explicit workspace root
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import anyio
from mcp.server import Server
from mcp.types import TextContent, Tool

from trellis import __version__
from trellis.errors import method_not_found
from trellis.mcp_tools import files, workspace
from trellis.mcp_tools.common import ToolContext

logger = logging.getLogger(__name__)

SERVER_NAME = "trellis"

# Registration order is catalog order.
_TOOL_MODULES = (files, workspace)


# ---------------------------------------------------------------------------
# Tool catalog
# ---------------------------------------------------------------------------


def _collect_tools() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    tools: list[Tool] = []
    handlers: dict[str, Callable[..., Any]] = {}
    for module in _TOOL_MODULES:
        module_tools, module_handlers = module.register()
        tools.extend(module_tools)
        handlers.update(module_handlers)
    return tools, handlers


def list_tools() -> list[Tool]:
    """The fixed, ordered tool catalog."""
    return _collect_tools()[0]


# ---------------------------------------------------------------------------
# Tool dispatch
# ---------------------------------------------------------------------------


class Dispatcher:
    """Routes a tool name to its handler.

    Failures are logged and re-raised unchanged; nothing is retried or
    suppressed.
    """

    def __init__(self, ctx: ToolContext) -> None:
        self._ctx = ctx
        self._tools, self._handlers = _collect_tools()

    def list_tools(self) -> list[Tool]:
        return list(self._tools)

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        arguments = arguments or {}
        t0 = time.monotonic()
        try:
            handler = self._handlers.get(name)
            if handler is None:
                raise method_not_found(name)
            result: list[TextContent] = await handler(self._ctx, arguments)
        except Exception as exc:
            logger.error(
                "tool_error",
                extra={"tool": name, "args_data": arguments, "error": str(exc)},
                exc_info=True,
            )
            raise
        else:
            duration_ms = round((time.monotonic() - t0) * 1000, 1)
            logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
            return result


def build_server(dispatcher: Dispatcher) -> Server[Any, Any]:
    """Create an MCP server whose tool surface is *dispatcher*.

    Tool calls are serialized: one invocation runs at a time per server.
    """
    server: Server[Any, Any] = Server(SERVER_NAME, version=__version__)
    call_lock = anyio.Lock()

    @server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
    async def _list_tools() -> list[Tool]:
        return dispatcher.list_tools()

    # Arguments are validated by each handler, not against the JSON Schema.
    @server.call_tool(validate_input=False)  # type: ignore[untyped-decorator]
    async def _call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        async with call_lock:
            return await dispatcher.dispatch(name, arguments)

    return server


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def run_stdio(
    workspace_dirs: list[Path],
    *,
    config_path: Path | None = None,
    active_file: Path | None = None,
) -> None:
    """Serve on stdin/stdout until the client hangs up or SIGINT."""
    from trellis.config import TRELLIS_DIR_NAME, default_config_path, read_server_config
    from trellis.lifecycle import ServerController
    from trellis.logging import setup_logging
    from trellis.workspace import LocalFileSystem, LocalWorkspace

    roots = workspace_dirs or [Path.cwd()]
    primary = roots[0].resolve()
    config = read_server_config(config_path or default_config_path(primary))
    setup_logging(primary / TRELLIS_DIR_NAME, config.log_level)

    controller = ServerController(config, LocalWorkspace(roots, active_file=active_file), LocalFileSystem())
    controller.install_signal_handlers()
    await controller.start()
    try:
        await controller.wait_closed()
    finally:
        await controller.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Trellis MCP server")
    parser.add_argument(
        "--workspace",
        type=Path,
        action="append",
        default=[],
        help="Workspace root (repeatable; the first one resolves tool paths). Defaults to cwd.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: <workspace>/.trellis/config.json)")
    parser.add_argument("--active-file", type=Path, default=None, help="File reported as the active editor")
    args = parser.parse_args()

    asyncio.run(run_stdio(args.workspace, config_path=args.config, active_file=args.active_file))


if __name__ == "__main__":
    main()
