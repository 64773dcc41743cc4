"""Trellis: workspace file tools for agents, served over MCP stdio."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trellis")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from trellis.lifecycle import ServerController  # noqa: E402
from trellis.workspace import LocalFileSystem, LocalWorkspace  # noqa: E402

__all__ = ["LocalFileSystem", "LocalWorkspace", "ServerController", "__version__"]
