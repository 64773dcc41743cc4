"""Server lifecycle: start / stop / is_running around one transport.

``ServerController`` is the handle the CLI owns; there is no process-wide
"current server".  Transitions run under a single lock so concurrent
``start()`` / ``stop()`` calls cannot interleave.

``start()`` while running raises. ``stop()`` while stopped is a no-op.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import signal
from collections.abc import Callable
from typing import Any

from trellis.config import ServerConfig
from trellis.mcp_server import Dispatcher, build_server
from trellis.mcp_tools.common import ToolContext
from trellis.transport import StdioTransport, StreamFactory
from trellis.workspace import FileSystem, LocalFileSystem, WorkspaceHost

logger = logging.getLogger(__name__)

# Upper bound for the best-effort stop on SIGINT before the process exits.
_INTERRUPT_STOP_TIMEOUT = 5.0


class LifecycleState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class ServerController:
    def __init__(
        self,
        config: ServerConfig,
        workspace: WorkspaceHost,
        fs: FileSystem | None = None,
        *,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        self.config = config
        self._workspace = workspace
        self._fs: FileSystem = fs or LocalFileSystem()
        self._stream_factory = stream_factory
        self._state = LifecycleState.STOPPED
        self._transport: StdioTransport | None = None
        self._lock = asyncio.Lock()
        self._interrupt_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def transport(self) -> StdioTransport | None:
        return self._transport

    def is_running(self) -> bool:
        """True while started and the session is live.

        After the peer hangs up this turns False, but ``state`` stays RUNNING
        until ``stop()`` releases the transport.
        """
        transport = self._transport
        return self._state is LifecycleState.RUNNING and transport is not None and transport.is_connected()

    async def start(self) -> None:
        async with self._lock:
            if self.is_running():
                msg = "Server is already running"
                raise RuntimeError(msg)
            if self._transport is not None:
                # The previous session ended on peer EOF; release it first.
                await self._transport.close()
                self._transport = None
                self._state = LifecycleState.STOPPED

            try:
                dispatcher = Dispatcher(ToolContext(workspace=self._workspace, fs=self._fs, config=self.config))
                transport = StdioTransport(build_server(dispatcher), self._stream_factory)
                await transport.connect()
            except Exception:
                logger.error("server_start_failed", extra={"tool": "server"}, exc_info=True)
                raise

            self._transport = transport
            self._state = LifecycleState.RUNNING
            roots = [str(f.path) for f in self._workspace.workspace_folders()]
            logger.info("server_start", extra={"tool": "server", "args_data": {"roots": roots}})

    async def stop(self) -> None:
        async with self._lock:
            if self._state is LifecycleState.STOPPED:
                return

            transport = self._transport
            try:
                if transport is not None:
                    await transport.close()
            except Exception:
                logger.error("server_stop_failed", extra={"tool": "server"}, exc_info=True)
                raise
            self._state = LifecycleState.STOPPED
            self._transport = None
            logger.info("server_stop", extra={"tool": "server"})

    async def wait_closed(self) -> None:
        """Wait until the client ends the session."""
        transport = self._transport
        if transport is not None:
            await transport.wait_closed()

    # -- interrupt safety net ------------------------------------------------

    def install_signal_handlers(self, exit_process: Callable[[int], Any] = os._exit) -> bool:
        """Stop (best effort) and exit the process on SIGINT.

        Returns False when the platform's event loop has no signal support.
        """
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._on_interrupt, exit_process)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unsupported on this event loop", exc_info=True)
            return False
        return True

    def _on_interrupt(self, exit_process: Callable[[int], Any]) -> None:
        if self._interrupt_task is not None and not self._interrupt_task.done():
            return
        # The loop keeps only a weak reference to tasks.
        self._interrupt_task = asyncio.get_running_loop().create_task(self._handle_interrupt(exit_process))

    async def _handle_interrupt(self, exit_process: Callable[[int], Any]) -> None:
        logger.warning("server_interrupt", extra={"tool": "server"})
        try:
            await asyncio.wait_for(self.stop(), timeout=_INTERRUPT_STOP_TIMEOUT)
        except Exception:
            logger.error("server_stop_failed", extra={"tool": "server"}, exc_info=True)
        for handler in logging.getLogger("trellis").handlers:
            handler.flush()
        exit_process(0)
