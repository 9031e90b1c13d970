"""End-to-end tests for a chat session with a scripted provider."""

from __future__ import annotations

import asyncio
import gc

import pytest
import pytest_asyncio

from tests.helpers import InMemoryVaultAdapter, ScriptedProvider, make_settings, provider_failure, text, tool
from vaultpilot.ai.orchestration.permissions import PermissionChoice, PermissionRequest
from vaultpilot.ai.orchestration.session import ChatSession
from vaultpilot.chat.message_model import ConversationTurn, MessageKind
from vaultpilot.services.settings import ToolExecutionMode
from vaultpilot.ui.events import (
    ChatCleared,
    EditApplied,
    EditFailed,
    MessageAppended,
    PermissionRequested,
    ToolExecuted,
    TurnCompleted,
)


def answer_with(choice: PermissionChoice, seen: list[str] | None = None):
    def prompter(request: PermissionRequest) -> None:
        if seen is not None:
            seen.append(request.tool_name)
        request.resolve(choice)

    return prompter


def kinds(session: ChatSession) -> list[MessageKind]:
    return [message.kind for message in session.messages]


@pytest_asyncio.fixture
async def make_session(adapter: InMemoryVaultAdapter):
    sessions: list[ChatSession] = []

    def factory(replies, **settings_overrides) -> ChatSession:
        session = ChatSession(make_settings(**settings_overrides), adapter, client=ScriptedProvider(replies))
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        await session.aclose()


@pytest.mark.asyncio
async def test_read_folder_allowed_once(make_session, adapter: InMemoryVaultAdapter) -> None:
    seen: list[str] = []
    session = make_session([tool("read_folder", path="/vault"), text("The vault has a.md and notes.")])
    session.set_prompter(answer_with(PermissionChoice.ONCE, seen))

    outcome = await session.send_message("What is in my vault?")

    assert outcome is not None and outcome.text == "The vault has a.md and notes."
    assert seen == ["read_folder"]
    assert kinds(session) == [MessageKind.USER, MessageKind.TOOL_LOG, MessageKind.ANSWER]
    assert session.messages[1].content == "[Tool used: read_folder /vault]"
    assert not session.permissions.allows("read_folder")


@pytest.mark.asyncio
async def test_edit_is_proposed_then_applied(make_session, adapter: InMemoryVaultAdapter) -> None:
    session = make_session([tool("edit_file", path="/vault/a.md", content="new text"), text("Proposed.")])
    session.set_tool_execution_mode(ToolExecutionMode.ALLOW_ALL)
    applied: list[EditApplied] = []
    session.bus.subscribe(EditApplied, applied.append)

    await session.send_message("Rewrite a.md")

    proposal = next(m for m in session.messages if m.kind is MessageKind.PENDING_EDIT)
    assert adapter.files["/vault/a.md"] == "old text"
    assert proposal.pending_edit_id in session.pending_edits

    assert await session.apply_edit(proposal.pending_edit_id)

    assert adapter.files["/vault/a.md"] == "new text"
    assert session.workspace.cache.get("/vault/a.md") == "new text"
    assert session.messages[-1].content == "Applied edit to /vault/a.md"
    assert [event.path for event in applied] == ["/vault/a.md"]
    assert not await session.apply_edit(proposal.pending_edit_id)


@pytest.mark.asyncio
async def test_failed_apply_reports_error_and_keeps_edit(make_session, adapter: InMemoryVaultAdapter) -> None:
    session = make_session([tool("edit_file", path="/vault/a.md", content="new text"), text("ok")])
    session.set_tool_execution_mode("allow_all")
    failures: list[EditFailed] = []
    session.bus.subscribe(EditFailed, failures.append)
    await session.send_message("Rewrite a.md")
    edit_id = session.pending_edits.pending()[0].id
    adapter.fail_writes = True

    assert not await session.apply_edit(edit_id)

    assert edit_id in session.pending_edits
    assert session.messages[-1].kind is MessageKind.ERROR
    assert session.messages[-1].content.startswith("Failed to apply edit: ")
    assert failures[0].edit_id == edit_id


@pytest.mark.asyncio
async def test_reject_edit(make_session, adapter: InMemoryVaultAdapter) -> None:
    session = make_session([tool("edit_file", path="/vault/a.md", content="new text"), text("ok")])
    session.set_tool_execution_mode("allow_all")
    await session.send_message("Rewrite a.md")
    edit_id = session.pending_edits.pending()[0].id

    assert session.reject_edit(edit_id)

    assert adapter.writes == []
    assert session.messages[-1].content == "Rejected edit for /vault/a.md"
    assert not session.reject_edit(edit_id)


@pytest.mark.asyncio
async def test_denied_tool_posts_notice_and_model_continues(make_session, adapter: InMemoryVaultAdapter) -> None:
    session = make_session([tool("create_folder", path="/vault/new"), text("Okay, I won't.")])
    session.set_prompter(answer_with(PermissionChoice.DENY))
    executed: list[ToolExecuted] = []
    session.bus.subscribe(ToolExecuted, executed.append)

    await session.send_message("Make a folder")

    assert "/vault/new" not in adapter.folders
    assert kinds(session) == [MessageKind.USER, MessageKind.NOTICE, MessageKind.ANSWER]
    assert session.messages[1].content == "[Tool blocked by user: create_folder]"
    assert executed[0].tool_name == "create_folder" and not executed[0].executed


@pytest.mark.asyncio
async def test_without_prompter_or_listener_tools_are_denied(make_session, adapter: InMemoryVaultAdapter) -> None:
    session = make_session([tool("read_file", path="/vault/a.md"), text("ok")])

    await session.send_message("Read a.md")

    assert session.messages[1].content == "[Tool blocked by user: read_file]"


@pytest.mark.asyncio
async def test_permission_event_can_be_answered_by_a_subscriber(make_session) -> None:
    session = make_session([tool("read_file", path="/vault/a.md"), text("ok")])
    requests: list[PermissionRequest] = []

    def on_request(event: PermissionRequested) -> None:
        requests.append(event.request)
        asyncio.get_running_loop().call_soon(event.request.resolve, PermissionChoice.TOOL)

    session.bus.subscribe(PermissionRequested, on_request)

    await session.send_message("Read a.md")

    assert [request.tool_name for request in requests] == ["read_file"]
    assert session.permissions.allows("read_file")


@pytest.mark.asyncio
async def test_history_sent_to_provider_excludes_tool_traffic(make_session) -> None:
    session = make_session([tool("read_file", path="/vault/a.md"), text("first"), text("second")])
    session.set_tool_execution_mode("allow_all")

    await session.send_message("one")
    await session.send_message("two")

    provider: ScriptedProvider = session.runner._client  # type: ignore[assignment]
    assert provider.requests[-1]["turns"] == [
        ConversationTurn(role="user", content="one"),
        ConversationTurn(role="assistant", content="first"),
        ConversationTurn(role="user", content="two"),
    ]


@pytest.mark.asyncio
async def test_provider_failure_becomes_error_message(make_session) -> None:
    session = make_session([provider_failure("Invalid API key", status_code=401)])
    completed: list[TurnCompleted] = []
    session.bus.subscribe(TurnCompleted, completed.append)

    await session.send_message("hi")

    assert session.messages[-1].kind is MessageKind.ERROR
    assert session.messages[-1].content == "Error: Invalid API key"
    assert not completed[0].success
    assert session.log.conversation_turns() == [ConversationTurn(role="user", content="hi")]


@pytest.mark.asyncio
async def test_missing_provider_is_reported_without_calling_out(make_session) -> None:
    session = make_session([], providers=[])

    outcome = await session.send_message("hi")

    assert outcome is not None and outcome.failed
    assert [m.content for m in session.messages] == ["Error: No provider configured"]


@pytest.mark.asyncio
async def test_blank_messages_are_ignored(make_session) -> None:
    session = make_session([])

    assert await session.send_message("   ") is None
    assert session.messages == ()


@pytest.mark.asyncio
async def test_messages_are_processed_one_at_a_time(make_session) -> None:
    session = make_session([text("first"), text("second")])

    await asyncio.gather(session.send_message("one"), session.send_message("two"))

    assert [m.content for m in session.messages] == ["one", "first", "two", "second"]


@pytest.mark.asyncio
async def test_clear_keeps_pending_edits_and_grants(make_session) -> None:
    session = make_session([tool("edit_file", path="/vault/a.md", content="x"), text("ok")])
    session.set_prompter(answer_with(PermissionChoice.ALL))
    cleared: list[ChatCleared] = []
    appended: list[MessageAppended] = []
    session.bus.subscribe(ChatCleared, cleared.append)
    session.bus.subscribe(MessageAppended, appended.append)
    await session.send_message("edit")

    session.clear()

    assert session.messages == ()
    assert len(session.pending_edits) == 1
    assert session.permissions.session_allow_all
    assert len(cleared) == 1
    assert len(appended) == 4


@pytest.mark.asyncio
async def test_open_document_sets_observed_file(make_session) -> None:
    session = make_session([text("You are looking at a todo list.")])

    content = await session.open_document("/vault/notes/todo.md")
    await session.send_message("What am I looking at?")

    provider: ScriptedProvider = session.runner._client  # type: ignore[assignment]
    assert content.startswith("- buy milk")
    assert "Path: /vault/notes/todo.md" in provider.requests[0]["system_prompt"]


@pytest.mark.asyncio
async def test_refresh_file_structure(make_session) -> None:
    session = make_session([], vault_root="/vault")

    await session.refresh_file_structure()

    assert [entry.name for entry in session.workspace.file_structure] == ["notes", "a.md"]
    assert session.workspace.file_structure[0].children[0].path == "/vault/notes/todo.md"


class PermissionWindow:
    def __init__(self) -> None:
        self.requests: list[PermissionRequest] = []

    def on_permission(self, event: PermissionRequested) -> None:
        self.requests.append(event.request)


@pytest.mark.asyncio
async def test_collected_permission_subscriber_denies_instead_of_waiting(make_session) -> None:
    session = make_session([tool("read_folder", path="/vault"), text("ok")])
    window = PermissionWindow()
    session.bus.subscribe(PermissionRequested, window.on_permission)
    del window
    gc.collect()

    await asyncio.wait_for(session.send_message("list"), timeout=1.0)

    assert session.messages[1].content == "[Tool blocked by user: read_folder]"
    assert session.messages[-1].content == "ok"


@pytest.mark.asyncio
async def test_allow_all_mode_survives_a_later_switch_to_ask(make_session, adapter: InMemoryVaultAdapter) -> None:
    seen: list[str] = []
    session = make_session([tool("create_folder", path="/vault/new"), text("done")])
    session.set_prompter(answer_with(PermissionChoice.DENY, seen))
    session.set_tool_execution_mode("allow_all")

    session.set_tool_execution_mode(ToolExecutionMode.ASK)
    await session.send_message("Make a folder")

    assert session.gate.mode is ToolExecutionMode.ALLOW_ALL
    assert seen == []
    assert "/vault/new" in adapter.folders
