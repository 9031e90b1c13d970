"""Filesystem access for the vault.

The assistant never touches :mod:`pathlib` directly; every disk operation goes
through a :class:`VaultAdapter` so the host application can substitute its own
storage layer. :class:`LocalVaultAdapter` is the default implementation backed
by the local filesystem.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from ..utils.file_io import read_text, write_text

__all__ = [
    "VaultAdapter",
    "VaultEntry",
    "FileEntry",
    "LocalVaultAdapter",
    "load_file_structure",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class VaultEntry:
    """A single directory listing row."""

    name: str
    is_directory: bool


@dataclass(slots=True)
class FileEntry:
    """Node of the vault tree shown in the file explorer."""

    name: str
    path: str
    is_directory: bool
    children: list[FileEntry] = field(default_factory=list)


@runtime_checkable
class VaultAdapter(Protocol):
    """Storage operations consumed by the assistant core.

    Implementations may raise any exception; callers convert failures into
    human-readable strings.
    """

    async def exists(self, path: str) -> bool:
        ...

    async def read_text_file(self, path: str) -> str:
        ...

    async def write_text_file(self, path: str, content: str) -> None:
        ...

    async def read_dir(self, path: str) -> Sequence[VaultEntry]:
        ...

    async def mkdir(self, path: str) -> None:
        ...


class LocalVaultAdapter:
    """:class:`VaultAdapter` backed by the local filesystem.

    Relative paths are resolved against ``root`` when one is configured.
    Blocking IO runs in a worker thread so the event loop stays responsive.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self._root = Path(root).expanduser() if root else None

    @property
    def root(self) -> Path | None:
        return self._root

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).exists)

    async def read_text_file(self, path: str) -> str:
        target = self._resolve(path)
        LOGGER.debug("Reading %s", target)
        return await asyncio.to_thread(read_text, target)

    async def write_text_file(self, path: str, content: str) -> None:
        target = self._resolve(path)
        LOGGER.debug("Writing %d chars to %s", len(content), target)
        await asyncio.to_thread(write_text, target, content)

    async def read_dir(self, path: str) -> list[VaultEntry]:
        target = self._resolve(path)
        return await asyncio.to_thread(self._list_dir, target)

    async def mkdir(self, path: str) -> None:
        target = self._resolve(path)
        LOGGER.debug("Creating folder %s", target)
        await asyncio.to_thread(target.mkdir, parents=True, exist_ok=False)

    def _resolve(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if self._root is not None and not candidate.is_absolute():
            return self._root / candidate
        return candidate

    @staticmethod
    def _list_dir(target: Path) -> list[VaultEntry]:
        return [VaultEntry(name=child.name, is_directory=child.is_dir()) for child in target.iterdir()]


async def load_file_structure(adapter: VaultAdapter, root: str) -> list[FileEntry]:
    """Build the vault tree below ``root``, folders first, then by name.

    Hidden entries (dot files) are skipped.
    """

    entries = await adapter.read_dir(root)
    nodes: list[FileEntry] = []
    for entry in entries:
        if entry.name.startswith("."):
            continue
        full_path = _join(root, entry.name)
        node = FileEntry(name=entry.name, path=full_path, is_directory=entry.is_directory)
        if entry.is_directory:
            node.children = await load_file_structure(adapter, full_path)
        nodes.append(node)
    nodes.sort(key=lambda node: (not node.is_directory, node.name.lower()))
    return nodes


def _join(root: str, name: str) -> str:
    if not root:
        return name
    return f"{root.rstrip('/')}/{name}"
