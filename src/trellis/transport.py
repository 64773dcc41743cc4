"""Transport/session: binds an MCP server to one read/write stream pair.

Framing (newline-delimited JSON-RPC) is handled by the MCP SDK's stdio
streams.  The transport owns the session task and its two-state lifecycle:

    DISCONNECTED --connect()--> CONNECTED --close() / peer EOF--> DISCONNECTED
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server

logger = logging.getLogger(__name__)

# Returns an async context manager yielding (read_stream, write_stream).
StreamFactory = Callable[[], AbstractAsyncContextManager[tuple[Any, Any]]]


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class StdioTransport:
    """One MCP session over stdin/stdout (or any injected stream pair)."""

    def __init__(self, server: Server[Any, Any], stream_factory: StreamFactory | None = None) -> None:
        self._server = server
        self._stream_factory: StreamFactory = stream_factory or stdio_server
        self._state = SessionState.DISCONNECTED
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    async def connect(self) -> None:
        """Bind the stream pair and start serving.

        Returns once the streams are open.  A failure while binding is
        re-raised and the transport stays DISCONNECTED.
        """
        if self._state is SessionState.CONNECTED:
            msg = "Transport is already connected"
            raise RuntimeError(msg)

        bound: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        task = asyncio.create_task(self._serve(bound), name="trellis-mcp-session")
        try:
            await bound
        except BaseException:
            if not task.done():
                task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise
        self._task = task
        self._state = SessionState.CONNECTED

    async def _serve(self, bound: asyncio.Future[None]) -> None:
        opened = False
        try:
            async with self._stream_factory() as (read_stream, write_stream):
                bound.set_result(None)
                opened = True
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                )
        except Exception as exc:
            if not bound.done():
                bound.set_exception(exc)
                return
            logger.error("session_error", exc_info=True)
        finally:
            if not bound.done():
                bound.set_exception(RuntimeError("Session ended before streams were bound"))
            self._state = SessionState.DISCONNECTED
            if opened:
                logger.info("session_closed")

    async def wait_closed(self) -> None:
        """Wait until the session ends (peer EOF or close())."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        """Stop serving. Closing a disconnected transport is a no-op."""
        task, self._task = self._task, None
        self._state = SessionState.DISCONNECTED
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
