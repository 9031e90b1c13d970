"""Base classes for AI tools.

Every tool is an async callable taking string arguments and returning the
text the model will read next. Failures are rendered into that text rather
than raised to the dispatcher.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping

import httpx

from ...chat.message_model import DisplayMessage, MessageKind
from ...services.vault import VaultAdapter
from ...services.workspace import WorkspaceState
from .errors import ToolError
from .tool_registry import ToolName

if TYPE_CHECKING:
    from ..orchestration.pending_edits import PendingEditStore

LOGGER = logging.getLogger(__name__)

MessageSink = Callable[[DisplayMessage], None]


def _discard(_message: DisplayMessage) -> None:
    return None


@dataclass(slots=True)
class ToolContext:
    """Runtime context provided to tool execution.

    Attributes:
        adapter: Filesystem access for the vault.
        workspace: Cached documents plus the editor's open/viewed files.
        pending_edits: Store receiving proposals from ``edit_file``.
        http_client: Shared client for ``fetch_url`` and ``research``.
        notify: Receives display messages produced while a tool runs.
        fetch_char_limit: Characters of a fetched page returned to the model.
        research_proxy_url: Text-extraction proxy prefixed to research URLs.
    """

    adapter: VaultAdapter
    workspace: WorkspaceState
    pending_edits: "PendingEditStore"
    http_client: httpx.AsyncClient | None = None
    notify: MessageSink = field(default=_discard)
    fetch_char_limit: int = 8000
    research_proxy_url: str = "https://r.jina.ai/"

    def post(self, content: str, kind: MessageKind, **extra: Any) -> DisplayMessage:
        """Create an assistant display message and hand it to :attr:`notify`."""

        message = DisplayMessage(role="assistant", content=content, kind=kind, **extra)
        self.notify(message)
        return message

    def tool_log(self, summary: str) -> DisplayMessage:
        return self.post(f"[Tool used: {summary}]", MessageKind.TOOL_LOG)


class BaseTool(ABC):
    """Abstract base class for all AI tools.

    Subclasses set :attr:`name` and implement :meth:`execute`. Expected
    failures are raised as :class:`ToolError` whose message is returned to
    the model verbatim.
    """

    name: ClassVar[ToolName]

    async def run(self, context: ToolContext, arguments: Mapping[str, str]) -> str:
        start_time = time.perf_counter()
        try:
            result = await self.execute(context, dict(arguments))
        except ToolError as exc:
            LOGGER.info("Tool %s failed: %s", self.name.value, exc)
            return exc.to_text()
        except Exception as exc:
            LOGGER.exception("Tool %s failed unexpectedly", self.name.value)
            return f"Error: {exc}"
        LOGGER.debug(
            "Tool %s finished in %.1fms (%d chars)",
            self.name.value,
            (time.perf_counter() - start_time) * 1000.0,
            len(result),
        )
        return result

    @abstractmethod
    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        """Perform the tool's work and return the model-facing text."""


__all__ = ["BaseTool", "MessageSink", "ToolContext"]
