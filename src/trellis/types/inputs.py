# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""TypedDict contracts for MCP tool handler input arguments.

Each TypedDict mirrors the JSON Schema ``inputSchema`` on the corresponding
``mcp.types.Tool`` definition.  ``TOOL_ARGS_MAP`` maps tool names to their
TypedDict class so the sync test can verify structural agreement.

The server does not enforce JSON Schema: ``cast()`` in the handlers is type
narrowing only, and each handler validates the fields it reads.
"""

# NOTE: Do NOT add ``from __future__ import annotations`` to this module.
# It breaks TypedDict.__required_keys__ / __optional_keys__ introspection
# on Python <3.14, which the sync test depends on.

from typing import NotRequired, TypedDict

# ---------------------------------------------------------------------------
# files.py handlers
# ---------------------------------------------------------------------------


class ReadFileArgs(TypedDict):
    path: str


class WriteFileArgs(TypedDict):
    path: str
    content: str


class ListFilesArgs(TypedDict):
    path: NotRequired[str]
    recursive: NotRequired[bool]


class CreateDirectoryArgs(TypedDict):
    path: str


class DeleteFileArgs(TypedDict):
    path: str


# ---------------------------------------------------------------------------
# workspace.py handlers
# ---------------------------------------------------------------------------

# Keys are the wire names (camelCase) clients send.
SearchFilesArgs = TypedDict(
    "SearchFilesArgs",
    {
        "query": str,
        "filePattern": NotRequired[str],
        "caseSensitive": NotRequired[bool],
    },
)


TOOL_ARGS_MAP: dict[str, type] = {
    "read_file": ReadFileArgs,
    "write_file": WriteFileArgs,
    "list_files": ListFilesArgs,
    "create_directory": CreateDirectoryArgs,
    "delete_file": DeleteFileArgs,
    "search_files": SearchFilesArgs,
}
