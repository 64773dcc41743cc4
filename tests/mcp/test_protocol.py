"""End-to-end tests through an MCP client session."""

from __future__ import annotations

from pathlib import Path

from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session

from trellis.mcp_server import Dispatcher, build_server


class TestProtocol:
    async def test_catalog_over_the_wire(self, dispatcher: Dispatcher) -> None:
        async with create_connected_server_and_client_session(build_server(dispatcher)) as session:
            listed = await session.list_tools()
        assert [t.name for t in listed.tools] == [t.name for t in dispatcher.list_tools()]

    async def test_write_then_read(self, dispatcher: Dispatcher, workspace_root: Path) -> None:
        async with create_connected_server_and_client_session(build_server(dispatcher)) as session:
            written = await session.call_tool("write_file", {"path": "a/b.txt", "content": "hi"})
            read = await session.call_tool("read_file", {"path": "a/b.txt"})
        assert written.content[0].text == "Successfully wrote content to a/b.txt"  # type: ignore[union-attr]
        assert read.content[0].text == "File content from a/b.txt:\n\nhi"  # type: ignore[union-attr]
        assert (workspace_root / "a" / "b.txt").read_text() == "hi"

    async def test_unknown_tool_reported(self, dispatcher: Dispatcher) -> None:
        async with create_connected_server_and_client_session(build_server(dispatcher)) as session:
            try:
                result = await session.call_tool("nope", {})
            except McpError as exc:
                assert "Unknown tool: nope" in exc.error.message
            else:
                assert result.isError
                assert "Unknown tool: nope" in result.content[0].text  # type: ignore[union-attr]

    async def test_tool_failure_reported(self, dispatcher: Dispatcher) -> None:
        async with create_connected_server_and_client_session(build_server(dispatcher)) as session:
            try:
                result = await session.call_tool("read_file", {"path": "missing.txt"})
            except McpError as exc:
                assert "Failed to read file" in exc.error.message
            else:
                assert result.isError
                assert "Failed to read file" in result.content[0].text  # type: ignore[union-attr]
            # The session survives a failed call.
            listed = await session.list_tools()
        assert len(listed.tools) == 7
