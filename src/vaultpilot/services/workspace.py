"""What the user currently has open in the vault."""

from __future__ import annotations

from dataclasses import dataclass, field

from .document_cache import DocumentCache
from .vault import FileEntry

__all__ = ["WorkspaceState"]


@dataclass(slots=True)
class WorkspaceState:
    """Editor-side state the assistant reads when building its context."""

    cache: DocumentCache = field(default_factory=DocumentCache)
    active_file: str | None = None
    viewed_history: list[str] = field(default_factory=list)
    file_structure: list[FileEntry] = field(default_factory=list)

    def record_view(self, path: str) -> None:
        """Note that ``path`` was shown to the user and make it active."""

        self.viewed_history.append(path)
        self.active_file = path

    @property
    def observed_file(self) -> str | None:
        """The most recently viewed document, falling back to the active one."""

        if self.viewed_history:
            return self.viewed_history[-1]
        return self.active_file
