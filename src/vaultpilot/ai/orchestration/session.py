"""Chat session: wires the agent loop to a chat log and the user's decisions."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Mapping

import httpx

from ...chat.message_model import ChatLog, DisplayMessage, MessageKind
from ...services.settings import Settings, SettingsError, ToolExecutionMode
from ...services.vault import VaultAdapter, load_file_structure
from ...services.workspace import WorkspaceState
from ...ui.events import (
    ChatCleared,
    EditApplied,
    EditFailed,
    EditRejected,
    EventBus,
    MessageAppended,
    PermissionRequested,
    ToolExecuted,
    TurnCompleted,
    TurnStarted,
)
from ..client import AIClient, ClientSettings, ProviderConfig, ToolCall
from ..tools import BaseTool, ToolContext, ToolName, ToolRegistry, default_registry, default_tools
from .context_builder import ContextBuilder
from .pending_edits import PendingEditApplyError, PendingEditStore
from .permissions import PermissionChoice, PermissionGate, PermissionRequest, PermissionState, Prompter
from .runner import AgentRunner, ProviderClient, RunnerConfig, RunOutcome
from .tool_dispatcher import DispatchResult, ToolDispatcher

LOGGER = logging.getLogger(__name__)


class ChatSession:
    """One conversation with the assistant.

    The session owns its :class:`PermissionState`, its chat log and its
    pending edits. User messages are processed one at a time; a second
    :meth:`send_message` waits for the first to finish.
    """

    def __init__(
        self,
        settings: Settings,
        adapter: VaultAdapter,
        *,
        workspace: WorkspaceState | None = None,
        client: ProviderClient | None = None,
        bus: EventBus | None = None,
        prompter: Prompter | None = None,
        http_client: httpx.AsyncClient | None = None,
        registry: ToolRegistry | None = None,
        handlers: Mapping[ToolName, BaseTool] | None = None,
    ) -> None:
        self._settings = settings
        self._adapter = adapter
        self._bus = bus or EventBus()
        self._prompter = prompter
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            follow_redirects=True, timeout=settings.request_timeout
        )
        self._owns_client = client is None
        self._client: ProviderClient = client or AIClient(
            ClientSettings.from_settings(settings), http_client=self._http
        )
        self._lock = asyncio.Lock()

        self.workspace = workspace or WorkspaceState()
        self.log = ChatLog()
        self.permissions = PermissionState()
        self.pending_edits = PendingEditStore(adapter, self.workspace.cache)

        registry = registry or default_registry()
        self.gate = PermissionGate(
            self.permissions,
            mode=settings.tool_execution_mode,
            prompter=self._request_permission,
            timeout=settings.permission_timeout,
        )
        context = ToolContext(
            adapter=adapter,
            workspace=self.workspace,
            pending_edits=self.pending_edits,
            http_client=self._http,
            notify=self._append,
            fetch_char_limit=settings.fetch_char_limit,
            research_proxy_url=settings.research_proxy_url,
        )
        self.dispatcher = ToolDispatcher(
            registry=registry,
            handlers=handlers or default_tools(),
            gate=self.gate,
            context=context,
        )
        self.runner = AgentRunner(
            self._client,
            self.dispatcher,
            ContextBuilder(self.workspace, registry),
            config=RunnerConfig(max_iterations=settings.max_tool_iterations),
        )

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def messages(self) -> tuple[DisplayMessage, ...]:
        return self.log.messages

    def set_prompter(self, prompter: Prompter | None) -> None:
        """Install the callable that asks the user about tool calls."""

        self._prompter = prompter

    def set_tool_execution_mode(self, mode: ToolExecutionMode | str) -> None:
        self.gate.mode = mode
        LOGGER.info("Tool execution mode set to %s", self.gate.mode.value)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> RunOutcome | None:
        """Run one user message through the agent loop.

        Returns ``None`` when the message is blank. Provider failures end up
        in the log as an error message rather than being raised.
        """

        prompt = text.strip()
        if not prompt:
            return None
        async with self._lock:
            try:
                provider = ProviderConfig.from_settings(self._settings.active_provider())
            except SettingsError as exc:
                LOGGER.warning("Cannot send message: %s", exc)
                self._append(DisplayMessage(role="assistant", content=f"Error: {exc}", kind=MessageKind.ERROR))
                return RunOutcome(text=f"Error: {exc}", error=str(exc))

            self._append(DisplayMessage(role="user", content=prompt, kind=MessageKind.USER))
            self._bus.publish(TurnStarted(prompt=prompt))
            outcome = await self.runner.run(provider, self.log.conversation_turns(), on_tool=self._on_tool)
            kind = MessageKind.ERROR if outcome.failed else MessageKind.ANSWER
            self._append(DisplayMessage(role="assistant", content=outcome.text, kind=kind))
            self._bus.publish(
                TurnCompleted(
                    text=outcome.text,
                    success=not outcome.failed,
                    iterations=outcome.iterations,
                    budget_exhausted=outcome.budget_exhausted,
                )
            )
            return outcome

    def clear(self) -> None:
        """Empty the chat log. Pending edits and permissions survive."""

        self.log.clear()
        self._bus.publish(ChatCleared())

    # ------------------------------------------------------------------
    # Pending edits
    # ------------------------------------------------------------------

    async def apply_edit(self, edit_id: str) -> bool:
        try:
            edit = await self.pending_edits.apply(edit_id)
        except PendingEditApplyError as exc:
            self._append(
                DisplayMessage(role="assistant", content=f"Failed to apply edit: {exc}", kind=MessageKind.ERROR)
            )
            self._bus.publish(EditFailed(edit_id=edit_id, path=exc.edit.path, error=str(exc)))
            return False
        if edit is None:
            return False
        self._append(DisplayMessage(role="assistant", content=f"Applied edit to {edit.path}", kind=MessageKind.NOTICE))
        self._bus.publish(EditApplied(edit_id=edit.id, path=edit.path))
        return True

    def reject_edit(self, edit_id: str) -> bool:
        edit = self.pending_edits.reject(edit_id)
        if edit is None:
            return False
        self._append(DisplayMessage(role="assistant", content=f"Rejected edit for {edit.path}", kind=MessageKind.NOTICE))
        self._bus.publish(EditRejected(edit_id=edit.id, path=edit.path))
        return True

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------

    async def open_document(self, path: str) -> str:
        """Load ``path`` into the cache if needed and mark it as viewed."""

        content = self.workspace.cache.get(path)
        if content is None:
            content = await self._adapter.read_text_file(path)
            self.workspace.cache.set(path, content)
        self.workspace.record_view(path)
        return content

    async def refresh_file_structure(self, root: str | None = None) -> None:
        target = root if root is not None else self._settings.vault_root
        if not target:
            return
        self.workspace.file_structure = await load_file_structure(self._adapter, target)

    async def aclose(self) -> None:
        if self._owns_client and isinstance(self._client, AIClient):
            await self._client.aclose()
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _append(self, message: DisplayMessage) -> None:
        self.log.append(message)
        self._bus.publish(MessageAppended(message=message))

    async def _request_permission(self, request: PermissionRequest) -> None:
        delivered = self._bus.publish(PermissionRequested(request=request))
        if self._prompter is not None:
            outcome = self._prompter(request)
            if inspect.isawaitable(outcome):
                await outcome
        elif not delivered:
            LOGGER.info("Nobody is listening for permission requests; denying %s", request.tool_name)
            request.resolve(PermissionChoice.DENY)

    def _on_tool(self, call: ToolCall, result: DispatchResult) -> None:
        self._bus.publish(
            ToolExecuted(
                tool_name=call.name,
                result=result.text,
                executed=result.executed,
                duration_ms=result.execution_time_ms,
            )
        )


__all__ = ["ChatSession"]
