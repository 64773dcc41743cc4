"""Pure helpers shared across MCP tool modules.

This module has NO dependency on ``mcp_server``, so it can be imported
freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar, cast

from mcp.types import TextContent

from trellis.config import ServerConfig
from trellis.errors import internal_error
from trellis.workspace import FileSystem, WorkspaceFolder, WorkspaceHost

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class ToolContext:
    """Everything a handler may touch, passed explicitly on every call."""

    workspace: WorkspaceHost
    fs: FileSystem
    config: ServerConfig = field(default_factory=ServerConfig)


def _parse_args(arguments: dict[str, Any], cls: type[_T]) -> _T:
    """Cast MCP arguments to a typed dict for static analysis.

    No runtime validation: handlers check each field they read with the
    ``_require_*`` / ``_optional_*`` helpers below.
    """
    return cast(_T, arguments)


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise internal_error(f"{name} must be a string")
    return value


def _optional_str(value: Any, name: str, default: str) -> str:
    if value is None:
        return default
    return _require_str(value, name)


def _optional_bool(value: Any, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise internal_error(f"{name} must be a boolean")
    return value


def _active_root(ctx: ToolContext) -> WorkspaceFolder:
    """Return the first workspace folder; multi-root workspaces use only the first."""
    folders = ctx.workspace.workspace_folders()
    if not folders:
        raise internal_error("No workspace folder open")
    return folders[0]


def _safe_path(root: Path, raw: str) -> Path:
    """Resolve a user-supplied relative path inside the workspace root.

    Raises an INTERNAL_ERROR ToolError for absolute paths and for paths
    that escape the root.
    """
    if Path(raw).is_absolute():
        raise internal_error(f"Absolute paths not allowed: {raw}")

    base = root.resolve()
    resolved = (base / raw).resolve()
    try:
        resolved.relative_to(base)
    except ValueError:
        raise internal_error(f"Path escapes workspace root: {raw}") from None
    return resolved


def _safe_entry_path(root: Path, raw: str) -> Path:
    """Like :func:`_safe_path`, but the final component is left unresolved.

    A symlink names the link itself, not its target.  Only the parent is
    resolved and checked against the root.
    """
    name = Path(raw).name
    if name in ("", ".", "..") or Path(raw).is_absolute():
        return _safe_path(root, raw)
    return _safe_path(root, str(Path(raw).parent)) / name


def _relative_display(root: Path, path: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.name
