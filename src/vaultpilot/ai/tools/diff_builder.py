"""Helper that converts raw text pairs into unified diffs."""

from __future__ import annotations

import difflib
from dataclasses import dataclass


@dataclass(slots=True)
class DiffBuilderTool:
    """Build a line-oriented unified diff between two versions of a file."""

    default_filename: str = "document.md"
    default_context_lines: int = 3

    def run(self, original: str, updated: str, *, filename: str | None = None, context: int | None = None) -> str:
        """Return the unified diff, or an empty string when nothing changed."""

        if original is None or updated is None:
            raise ValueError("Both original and updated text must be provided")

        source_name = self._normalize_filename(filename)
        original_lines = original.splitlines()
        updated_lines = updated.splitlines()
        diff = difflib.unified_diff(
            original_lines,
            updated_lines,
            fromfile=f"a/{source_name}",
            tofile=f"b/{source_name}",
            lineterm="",
            n=self._normalize_context(context),
        )
        return "\n".join(diff)

    def _normalize_context(self, value: int | None) -> int:
        candidate = self.default_context_lines if value is None else int(value)
        return max(0, candidate)

    def _normalize_filename(self, name: str | None) -> str:
        if isinstance(name, str) and name.strip():
            return name.strip().lstrip("/")
        return self.default_filename


def build_diff(original: str, updated: str, *, filename: str | None = None) -> str:
    return DiffBuilderTool().run(original, updated, filename=filename)


__all__ = ["DiffBuilderTool", "build_diff"]
