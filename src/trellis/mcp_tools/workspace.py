"""MCP tools for workspace-wide search and workspace introspection."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from anyio import to_thread
from mcp.types import TextContent, Tool

from trellis.errors import internal_error
from trellis.mcp_tools.common import (
    ToolContext,
    _active_root,
    _optional_bool,
    _optional_str,
    _parse_args,
    _relative_display,
    _require_str,
    _text,
)
from trellis.mcp_tools.files import FILE_MARKER
from trellis.types.inputs import SearchFilesArgs

logger = logging.getLogger(__name__)

# Used when filePattern is omitted or empty.
_ALL_FILES_PATTERN = "**/*"


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for workspace-domain tools."""
    tools = [
        Tool(
            name="search_files",
            description="Search for text within files in the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text to search for"},
                    "filePattern": {
                        "type": "string",
                        "description": "Glob pattern for files to search in (e.g., '*.ts')",
                        "default": "*",
                    },
                    "caseSensitive": {
                        "type": "boolean",
                        "description": "Whether search should be case sensitive",
                        "default": False,
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="get_workspace_info",
            description="Get information about the current workspace",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "search_files": _handle_search_files,
        "get_workspace_info": _handle_get_workspace_info,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_search_files(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, SearchFilesArgs)
    query = _require_str(args.get("query"), "query")
    pattern = _optional_str(args.get("filePattern"), "filePattern", "") or _ALL_FILES_PATTERN
    case_sensitive = _optional_bool(args.get("caseSensitive"), "caseSensitive", False)
    root = _active_root(ctx).path.resolve()

    # The query is compiled as-is: regex metacharacters keep their meaning.
    try:
        regex = re.compile(query, 0 if case_sensitive else re.IGNORECASE)
        files = await ctx.fs.find_files(
            root,
            pattern,
            ctx.config.search_exclude_dirs,
            ctx.config.max_search_results,
        )
    except (re.error, OSError, ValueError, NotImplementedError) as exc:
        raise internal_error("Failed to search files", exc) from exc

    results: list[str] = []
    for path in files:
        try:
            content = await ctx.fs.read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            if not ctx.config.skip_unreadable:
                raise internal_error("Failed to search files", exc) from exc
            logger.debug("Skipping unreadable file %s", path, exc_info=True)
            continue

        lines = [line.removesuffix("\r") for line in content.split("\n")]
        matches = [(lineno, line) for lineno, line in enumerate(lines, start=1) if regex.search(line)]
        if not matches:
            continue
        results.append(f"{FILE_MARKER} {_relative_display(root, path)}:")
        results.extend(f"  Line {lineno}: {line.strip()}" for lineno, line in matches)
        results.append("")

    return _text(f'Search results for "{query}":\n\n' + "\n".join(results))


async def _handle_get_workspace_info(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    editor = await to_thread.run_sync(ctx.workspace.active_editor)
    info = {
        "workspaceFolders": [
            {"name": folder.name, "uri": folder.uri, "path": str(folder.path)} for folder in ctx.workspace.workspace_folders()
        ],
        "activeTextEditor": (
            {"fileName": editor.file_name, "languageId": editor.language_id, "lineCount": editor.line_count} if editor else None
        ),
        "hostVersion": ctx.workspace.host_version(),
        "extensions": await to_thread.run_sync(ctx.workspace.extension_count),
    }
    return _text("Workspace Information:\n\n" + json.dumps(info, indent=2))
