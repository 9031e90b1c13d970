"""In-memory document contents shared between the editor and the assistant."""

from __future__ import annotations

import logging
from typing import Iterator

__all__ = ["DocumentCache"]

LOGGER = logging.getLogger(__name__)


class DocumentCache:
    """Path → content cache with an unsaved-changes marker set.

    The cache is only mutated from the event loop thread; callers running
    tools on worker threads must marshal writes back to the loop.
    """

    def __init__(self, contents: dict[str, str] | None = None) -> None:
        self._contents: dict[str, str] = dict(contents or {})
        self._unsaved: set[str] = set()

    def get(self, path: str) -> str | None:
        return self._contents.get(path)

    def set(self, path: str, content: str) -> None:
        self._contents[path] = content
        LOGGER.debug("Cached %s (%d chars)", path, len(content))

    def __contains__(self, path: object) -> bool:
        return path in self._contents

    def __len__(self) -> int:
        return len(self._contents)

    def items(self) -> Iterator[tuple[str, str]]:
        """Iterate over cached ``(path, content)`` pairs in insertion order."""

        return iter(list(self._contents.items()))

    def mark_unsaved(self, path: str) -> None:
        self._unsaved.add(path)

    def mark_saved(self, path: str) -> None:
        self._unsaved.discard(path)

    def is_unsaved(self, path: str) -> bool:
        return path in self._unsaved

    @property
    def unsaved_paths(self) -> frozenset[str]:
        return frozenset(self._unsaved)
