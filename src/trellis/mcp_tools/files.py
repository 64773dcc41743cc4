"""MCP tools for reading, writing, listing, creating, and deleting workspace paths."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

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
    _safe_entry_path,
    _safe_path,
    _text,
)
from trellis.types.inputs import CreateDirectoryArgs, DeleteFileArgs, ListFilesArgs, ReadFileArgs, WriteFileArgs
from trellis.workspace import DirEntry

DIR_MARKER = "\U0001f4c1"  # 📁
FILE_MARKER = "\U0001f4c4"  # 📄


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for file-domain tools."""
    tools = [
        Tool(
            name="read_file",
            description="Read content from a file in the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative path to the file from workspace root"},
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="write_file",
            description="Write content to a file in the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative path to the file from workspace root"},
                    "content": {"type": "string", "description": "Content to write to the file"},
                },
                "required": ["path", "content"],
            },
        ),
        Tool(
            name="list_files",
            description="List files and directories in the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Relative path to directory (default: workspace root)",
                        "default": ".",
                    },
                    "recursive": {
                        "type": "boolean",
                        "description": "Include subdirectories recursively",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="create_directory",
            description="Create a directory in the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative path to directory to create"},
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="delete_file",
            description="Delete a file or directory from the workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative path to file or directory to delete"},
                },
                "required": ["path"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "read_file": _handle_read_file,
        "write_file": _handle_write_file,
        "list_files": _handle_list_files,
        "create_directory": _handle_create_directory,
        "delete_file": _handle_delete_file,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_read_file(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, ReadFileArgs)
    rel = _require_str(args.get("path"), "path")
    target = _safe_path(_active_root(ctx).path, rel)

    try:
        content = await ctx.fs.read_text(target)
    except (OSError, UnicodeDecodeError) as exc:
        raise internal_error("Failed to read file", exc) from exc
    return _text(f"File content from {rel}:\n\n{content}")


async def _handle_write_file(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, WriteFileArgs)
    rel = _require_str(args.get("path"), "path")
    content = _require_str(args.get("content"), "content")
    target = _safe_path(_active_root(ctx).path, rel)

    try:
        await ctx.fs.mkdir(target.parent)
        await ctx.fs.write_text(target, content)
    except OSError as exc:
        raise internal_error("Failed to write file", exc) from exc
    return _text(f"Successfully wrote content to {rel}")


async def _handle_list_files(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, ListFilesArgs)
    # An empty path means the root, same as the default.
    rel = _optional_str(args.get("path"), "path", ".") or "."
    recursive = _optional_bool(args.get("recursive"), "recursive", False)
    root = _active_root(ctx).path.resolve()
    target = _safe_path(root, rel)

    try:
        entries = await _list_directory(ctx, root, target, recursive)
    except OSError as exc:
        raise internal_error("Failed to list files", exc) from exc
    return _text(f"Files in {rel}:\n\n" + "\n".join(entries))


async def _list_directory(ctx: ToolContext, root: Path, start: Path, recursive: bool) -> list[str]:
    """Render entries under *start* in pre-order, keeping directory-read order.

    Walks with an explicit stack of per-directory iterators.  Symlinked
    directories are listed but never entered, and each real directory is
    entered at most once.
    """
    max_depth = ctx.config.max_list_depth
    lines: list[str] = []
    visited = {await ctx.fs.resolve(start)}
    stack: list[tuple[Iterator[DirEntry], int]] = [(iter(await ctx.fs.read_dir(start)), 1)]

    while stack:
        entries, depth = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue

        rel = _relative_display(root, entry.path)
        if not entry.is_dir:
            lines.append(f"{FILE_MARKER} {rel}")
            continue

        lines.append(f"{DIR_MARKER} {rel}/")
        if not recursive or entry.is_symlink:
            continue
        if max_depth is not None and depth >= max_depth:
            continue
        real = await ctx.fs.resolve(entry.path)
        if real in visited:
            continue
        visited.add(real)
        stack.append((iter(await ctx.fs.read_dir(entry.path)), depth + 1))

    return lines


async def _handle_create_directory(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, CreateDirectoryArgs)
    rel = _require_str(args.get("path"), "path")
    target = _safe_path(_active_root(ctx).path, rel)

    try:
        await ctx.fs.mkdir(target)
    except OSError as exc:
        raise internal_error("Failed to create directory", exc) from exc
    return _text(f"Successfully created directory: {rel}")


async def _handle_delete_file(ctx: ToolContext, arguments: dict[str, Any]) -> list[TextContent]:
    args = _parse_args(arguments, DeleteFileArgs)
    rel = _require_str(args.get("path"), "path")
    root = _active_root(ctx).path.resolve()
    target = _safe_entry_path(root, rel)
    if target == root:
        raise internal_error("Refusing to delete the workspace root")

    try:
        if await ctx.fs.is_dir(target):
            await ctx.fs.remove_tree(target)
        else:
            await ctx.fs.unlink(target)
    except OSError as exc:
        raise internal_error("Failed to delete", exc) from exc
    return _text(f"Successfully deleted: {rel}")
