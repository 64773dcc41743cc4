"""Tagged errors raised by the dispatcher and tool handlers.

``ToolError`` is an :class:`mcp.shared.exceptions.McpError`, so the MCP SDK
reports it to the client with its message intact. The structured parts
(``kind`` and the wrapped ``cause``) stay on the exception object and are only
rendered to text by :meth:`ToolError.describe` or ``str()``.
"""

from __future__ import annotations

from enum import IntEnum

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, METHOD_NOT_FOUND, ErrorData


class ErrorKind(IntEnum):
    """JSON-RPC error codes used by the tool surface."""

    METHOD_NOT_FOUND = METHOD_NOT_FOUND
    INTERNAL_ERROR = INTERNAL_ERROR


class ToolError(McpError):
    """A failed tool invocation: ``{kind, message, cause}``."""

    def __init__(self, kind: ErrorKind, message: str, *, cause: BaseException | None = None) -> None:
        self.kind = kind
        self.message = message
        self.cause = cause
        super().__init__(ErrorData(code=int(kind), message=self.describe()))

    def describe(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"

    def __repr__(self) -> str:
        return f"ToolError({self.kind.name}, {self.message!r}, cause={self.cause!r})"


def internal_error(message: str, cause: BaseException | None = None) -> ToolError:
    return ToolError(ErrorKind.INTERNAL_ERROR, message, cause=cause)


def method_not_found(name: str) -> ToolError:
    return ToolError(ErrorKind.METHOD_NOT_FOUND, f"Unknown tool: {name}")
