"""Builds the system prompt from what the user is looking at."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from ...services.vault import FileEntry
from ...services.workspace import WorkspaceState
from ..prompts import system_prompt
from ..tools.tool_registry import ToolRegistry

LOGGER = logging.getLogger(__name__)


def flatten_file_tree(entries: Iterable[FileEntry]) -> List[str]:
    """Depth-first listing: folders as ``📁 path/`` followed by their children."""

    lines: List[str] = []
    for entry in entries:
        if entry.is_directory:
            lines.append(f"📁 {entry.path}/")
            lines.extend(flatten_file_tree(entry.children))
        else:
            lines.append(f"📄 {entry.path}")
    return lines


class ContextBuilder:
    """Renders the workspace and tool capabilities into a system prompt.

    The prompt is rebuilt for every provider request so it always reflects
    the current cache, including edits applied mid-conversation.
    """

    def __init__(self, workspace: WorkspaceState, registry: ToolRegistry) -> None:
        self._workspace = workspace
        self._registry = registry

    def capabilities(self) -> Sequence[str]:
        return [schema.capability or schema.description for schema in self._registry]

    def build(self) -> str:
        observed_path = self._workspace.observed_file
        observed_content = None
        if observed_path is not None:
            observed_content = self._workspace.cache.get(observed_path)
        listing = flatten_file_tree(self._workspace.file_structure)
        prompt = system_prompt(
            capabilities=self.capabilities(),
            vault_listing=listing,
            observed_path=observed_path,
            observed_content=observed_content,
        )
        LOGGER.debug(
            "Built system prompt (%d chars, observed=%s, %d vault entries)",
            len(prompt),
            observed_path if observed_content is not None else None,
            len(listing),
        )
        return prompt


__all__ = ["ContextBuilder", "flatten_file_tree"]
