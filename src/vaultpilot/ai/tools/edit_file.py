"""Tool that proposes whole-file edits for the user to review."""

from __future__ import annotations

import logging

from ...chat.message_model import MessageKind
from .base import BaseTool, ToolContext
from .tool_registry import ToolName

LOGGER = logging.getLogger(__name__)


class EditFileTool(BaseTool):
    """Diff the proposed content against the current file and queue it.

    The current content comes from the cache, else from disk, else is empty.
    """

    name = ToolName.EDIT_FILE

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        path = arguments["path"]
        old_content = context.workspace.cache.get(path)
        if old_content is None:
            try:
                old_content = await context.adapter.read_text_file(path)
            except Exception as exc:
                LOGGER.debug("Treating %s as a new file: %s", path, exc)
                old_content = ""

        edit = context.pending_edits.propose(path, arguments["content"], old_content)
        context.post(
            f"Proposed edit for {path}:\n\n{edit.diff}\n\nClick Apply to perform the change or Reject to cancel.",
            MessageKind.PENDING_EDIT,
            pending_edit_id=edit.id,
        )
        context.tool_log(f"edit_file {path} (pending id: {edit.id})")
        return f"Proposed edit created for {path} (pending id: {edit.id})"


__all__ = ["EditFileTool"]
