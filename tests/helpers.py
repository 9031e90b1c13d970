"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from vaultpilot.ai.client import ProviderConfig, ProviderError, ProviderReply, TextReply, ToolCall, ToolCallReply
from vaultpilot.ai.orchestration.pending_edits import PendingEditStore
from vaultpilot.ai.tools.base import ToolContext
from vaultpilot.ai.tools.tool_registry import ToolSchema
from vaultpilot.chat.message_model import ConversationTurn, DisplayMessage
from vaultpilot.services.settings import ProviderSettings, Settings
from vaultpilot.services.vault import VaultEntry
from vaultpilot.services.workspace import WorkspaceState


class InMemoryVaultAdapter:
    """Vault adapter backed by dictionaries; paths are plain strings."""

    def __init__(self, files: dict[str, str] | None = None, folders: Iterable[str] = ()) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.folders: set[str] = {"/"} | set(folders)
        self.writes: list[tuple[str, str]] = []
        self.fail_writes = False
        for path in self.files:
            self._add_parents(path)

    async def exists(self, path: str) -> bool:
        return path in self.files or path in self.folders

    async def read_text_file(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(2, "No such file or directory", path) from None

    async def write_text_file(self, path: str, content: str) -> None:
        if self.fail_writes:
            raise PermissionError(13, "Permission denied", path)
        self.files[path] = content
        self.writes.append((path, content))
        self._add_parents(path)

    async def read_dir(self, path: str) -> list[VaultEntry]:
        if path not in self.folders:
            raise FileNotFoundError(2, "No such file or directory", path)
        prefix = path.rstrip("/") + "/"
        names: dict[str, bool] = {}
        for folder in self.folders:
            if folder.startswith(prefix) and folder != path:
                names.setdefault(folder[len(prefix):].split("/")[0], True)
        for file_path in self.files:
            if file_path.startswith(prefix):
                remainder = file_path[len(prefix):]
                name = remainder.split("/")[0]
                names.setdefault(name, "/" in remainder)
        return [VaultEntry(name=name, is_directory=is_dir) for name, is_dir in names.items()]

    async def mkdir(self, path: str) -> None:
        if path in self.folders:
            raise FileExistsError(17, "File exists", path)
        self.folders.add(path)
        self._add_parents(path)

    def _add_parents(self, path: str) -> None:
        parts = path.rstrip("/").split("/")
        for index in range(2, len(parts)):
            self.folders.add("/".join(parts[:index]))


class ScriptedProvider:
    """Provider client returning queued replies and recording every request."""

    def __init__(self, replies: Sequence[ProviderReply | Exception]) -> None:
        self._replies = list(replies)
        self.requests: list[dict[str, Any]] = []

    async def complete(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        turns: Sequence[ConversationTurn],
        tools: Iterable[ToolSchema],
    ) -> ProviderReply:
        self.requests.append(
            {
                "provider": provider,
                "system_prompt": system_prompt,
                "turns": list(turns),
                "tools": [schema.name.value for schema in tools],
            }
        )
        if not self._replies:
            raise AssertionError("ScriptedProvider ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def text(value: str) -> TextReply:
    return TextReply(value)


def tool(name: str, **arguments: str) -> ToolCallReply:
    return ToolCallReply((ToolCall(name=name, arguments=dict(arguments)),))


def provider_failure(message: str = "boom", status_code: int | None = 500) -> ProviderError:
    return ProviderError(message, status_code=status_code)


def make_settings(**overrides: Any) -> Settings:
    settings = Settings(providers=[ProviderSettings(name="OpenAI", api_key="sk-test")])
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def make_context(
    adapter: InMemoryVaultAdapter | None = None,
    *,
    cache: dict[str, str] | None = None,
    http_client: Any = None,
    sink: list[DisplayMessage] | None = None,
) -> ToolContext:
    adapter = adapter or InMemoryVaultAdapter()
    workspace = WorkspaceState()
    for path, content in (cache or {}).items():
        workspace.cache.set(path, content)
    messages = sink if sink is not None else []
    return ToolContext(
        adapter=adapter,
        workspace=workspace,
        pending_edits=PendingEditStore(adapter, workspace.cache),
        http_client=http_client,
        notify=messages.append,
    )
