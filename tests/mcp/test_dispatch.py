"""Dispatcher and catalog tests: routing, unknown tools, failure logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from trellis.errors import ErrorKind, ToolError
from trellis.mcp_server import Dispatcher, list_tools

CATALOG_ORDER = [
    "read_file",
    "write_file",
    "list_files",
    "create_directory",
    "delete_file",
    "search_files",
    "get_workspace_info",
]


class TestCatalog:
    def test_fixed_order(self) -> None:
        assert [t.name for t in list_tools()] == CATALOG_ORDER

    def test_deterministic(self) -> None:
        first = [t.model_dump() for t in list_tools()]
        second = [t.model_dump() for t in list_tools()]
        assert first == second

    def test_dispatcher_exposes_same_catalog(self, dispatcher: Dispatcher) -> None:
        assert [t.name for t in dispatcher.list_tools()] == CATALOG_ORDER

    def test_required_fields(self) -> None:
        required = {t.name: t.inputSchema.get("required", []) for t in list_tools()}
        assert required["read_file"] == ["path"]
        assert required["write_file"] == ["path", "content"]
        assert required["list_files"] == []
        assert required["search_files"] == ["query"]
        assert required["get_workspace_info"] == []

    def test_list_files_defaults(self) -> None:
        schema = next(t for t in list_tools() if t.name == "list_files").inputSchema
        assert schema["properties"]["path"]["default"] == "."
        assert schema["properties"]["recursive"]["default"] is False


class TestUnknownTool:
    @pytest.mark.parametrize("name", ["", "read", "READ_FILE", "rm_rf", "list_tools"])
    async def test_method_not_found(self, dispatcher: Dispatcher, name: str) -> None:
        with pytest.raises(ToolError) as exc_info:
            await dispatcher.dispatch(name, {})
        assert exc_info.value.kind is ErrorKind.METHOD_NOT_FOUND
        assert exc_info.value.error.code == -32601
        assert exc_info.value.message == f"Unknown tool: {name}"


class TestFailureLogging:
    async def test_failure_logged_then_reraised(self, dispatcher: Dispatcher, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="trellis"), pytest.raises(ToolError):
            await dispatcher.dispatch("read_file", {"path": "missing.txt"})
        records = [r for r in caplog.records if r.getMessage() == "tool_error"]
        assert len(records) == 1
        assert records[0].tool == "read_file"  # type: ignore[attr-defined]
        assert records[0].exc_info is not None

    async def test_unknown_tool_logged(self, dispatcher: Dispatcher, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="trellis"), pytest.raises(ToolError):
            await dispatcher.dispatch("bogus", {})
        assert any(r.getMessage() == "tool_error" and r.tool == "bogus" for r in caplog.records)  # type: ignore[attr-defined]

    async def test_success_logged_with_duration(
        self, dispatcher: Dispatcher, workspace_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="trellis"):
            await dispatcher.dispatch("create_directory", {"path": "d"})
        records = [r for r in caplog.records if r.getMessage() == "tool_call"]
        assert len(records) == 1
        assert records[0].duration_ms >= 0  # type: ignore[attr-defined]

    async def test_unexpected_fault_propagates_unchanged(self, dispatcher: Dispatcher, monkeypatch: pytest.MonkeyPatch) -> None:
        async def boom(ctx: object, arguments: object) -> None:
            raise KeyError("storage layer exploded")

        monkeypatch.setitem(dispatcher._handlers, "read_file", boom)
        with pytest.raises(KeyError):
            await dispatcher.dispatch("read_file", {"path": "x"})

    async def test_dispatcher_usable_after_failure(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(ToolError):
            await dispatcher.dispatch("read_file", {"path": "missing.txt"})
        result = await dispatcher.dispatch("write_file", {"path": "ok.txt", "content": "fine"})
        assert "ok.txt" in result[0].text

    async def test_none_arguments_treated_as_empty(self, dispatcher: Dispatcher) -> None:
        result = await dispatcher.dispatch("list_files", None)
        assert result[0].text.startswith("Files in .:")
