"""Host collaborators consumed by the tool handlers.

The handlers never touch ``os`` or ``pathlib`` directly: they ask a
:class:`WorkspaceHost` for the workspace roots, the active editor and host
metadata, and a :class:`FileSystem` for storage.  ``LocalWorkspace`` and
``LocalFileSystem`` are the implementations used by the CLI; tests swap in
their own.

Blocking storage calls run in a worker thread (``anyio.to_thread``) so the
event loop serving the MCP session stays responsive.
"""

from __future__ import annotations

import functools
import logging
import os
import shutil
import stat
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from importlib.metadata import distributions
from pathlib import Path
from typing import Protocol

from anyio import to_thread

logger = logging.getLogger(__name__)

# Suffix -> editor language identifier, for the active-editor report.
_LANGUAGE_IDS: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".jsx": "javascriptreact",
    ".json": "json",
    ".md": "markdown",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".html": "html",
    ".css": "css",
    ".sh": "shellscript",
    ".rs": "rust",
    ".go": "go",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".java": "java",
    ".txt": "plaintext",
}


# ---------------------------------------------------------------------------
# Workspace host
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkspaceFolder:
    name: str
    path: Path

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    @classmethod
    def from_path(cls, path: Path) -> WorkspaceFolder:
        resolved = path.resolve()
        return cls(name=resolved.name or str(resolved), path=resolved)


@dataclass(frozen=True)
class ActiveEditor:
    file_name: str
    language_id: str
    line_count: int


class WorkspaceHost(Protocol):
    def workspace_folders(self) -> list[WorkspaceFolder]: ...

    def active_editor(self) -> ActiveEditor | None: ...

    def host_version(self) -> str: ...

    def extension_count(self) -> int: ...


def language_id_for(path: Path) -> str:
    return _LANGUAGE_IDS.get(path.suffix.lower(), "plaintext")


class LocalWorkspace:
    """Workspace host backed by directories given on the command line.

    Only the first root is used to resolve tool paths; the others are
    reported by ``get_workspace_info``.
    """

    def __init__(self, roots: Iterable[Path] = (), *, active_file: Path | None = None) -> None:
        self._roots = [Path(r) for r in roots]
        self._active_file = active_file

    def workspace_folders(self) -> list[WorkspaceFolder]:
        return [WorkspaceFolder.from_path(root) for root in self._roots]

    def active_editor(self) -> ActiveEditor | None:
        if self._active_file is None:
            return None
        path = self._active_file.resolve()
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            logger.warning("Active file %s is not readable; reporting no active editor", path)
            return None
        return ActiveEditor(
            file_name=str(path),
            language_id=language_id_for(path),
            line_count=text.count("\n") + 1,
        )

    def host_version(self) -> str:
        from trellis import __version__

        return __version__

    def extension_count(self) -> int:
        return sum(1 for _ in distributions())


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirEntry:
    name: str
    path: Path
    is_dir: bool
    is_symlink: bool


class FileSystem(Protocol):
    async def read_text(self, path: Path) -> str: ...

    async def write_text(self, path: Path, content: str) -> None: ...

    async def is_dir(self, path: Path) -> bool: ...

    async def mkdir(self, path: Path) -> None: ...

    async def remove_tree(self, path: Path) -> None: ...

    async def unlink(self, path: Path) -> None: ...

    async def read_dir(self, path: Path) -> list[DirEntry]: ...

    async def resolve(self, path: Path) -> Path: ...

    async def find_files(self, root: Path, pattern: str, exclude_dirs: Sequence[str], limit: int) -> list[Path]: ...


def _scan(path: Path) -> list[DirEntry]:
    # Entries keep the order the OS returns them.
    with os.scandir(path) as it:
        return [
            DirEntry(
                name=entry.name,
                path=path / entry.name,
                is_dir=entry.is_dir(),
                is_symlink=entry.is_symlink(),
            )
            for entry in it
        ]


def _find(root: Path, pattern: str, exclude_dirs: Sequence[str], limit: int) -> list[Path]:
    excluded = set(exclude_dirs)
    base = root.resolve()
    found: list[Path] = []
    for candidate in base.glob(pattern):
        if len(found) >= limit:
            break
        # Patterns may climb out with ".."; both the spelled and the real
        # location must stay under the root.
        lexical = Path(os.path.normpath(candidate))
        if not lexical.is_relative_to(base) or not candidate.resolve().is_relative_to(base):
            continue
        if excluded.intersection(lexical.relative_to(base).parts[:-1]):
            continue
        if lexical.is_file():
            found.append(lexical)
    return found


def _read_utf8(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


def _is_dir(path: Path) -> bool:
    # lstat() raises for a missing target; a symlink to a directory is not a directory here.
    return stat.S_ISDIR(path.lstat().st_mode)


class LocalFileSystem:
    """FileSystem over the local disk.

    Text is UTF-8 with line endings kept exactly as stored: no newline
    translation on read or write.
    """

    async def read_text(self, path: Path) -> str:
        return await to_thread.run_sync(_read_utf8, path)

    async def write_text(self, path: Path, content: str) -> None:
        await to_thread.run_sync(functools.partial(path.write_text, content, encoding="utf-8", newline=""))

    async def is_dir(self, path: Path) -> bool:
        return await to_thread.run_sync(_is_dir, path)

    async def mkdir(self, path: Path) -> None:
        await to_thread.run_sync(functools.partial(path.mkdir, parents=True, exist_ok=True))

    async def remove_tree(self, path: Path) -> None:
        await to_thread.run_sync(shutil.rmtree, path)

    async def unlink(self, path: Path) -> None:
        await to_thread.run_sync(path.unlink)

    async def read_dir(self, path: Path) -> list[DirEntry]:
        return await to_thread.run_sync(_scan, path)

    async def resolve(self, path: Path) -> Path:
        return await to_thread.run_sync(path.resolve)

    async def find_files(self, root: Path, pattern: str, exclude_dirs: Sequence[str], limit: int) -> list[Path]:
        return await to_thread.run_sync(_find, root, pattern, tuple(exclude_dirs), limit)
