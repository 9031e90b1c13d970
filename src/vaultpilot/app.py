"""Console front end for the vaultpilot assistant."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TextIO

from .ai.orchestration.permissions import PermissionChoice, PermissionRequest
from .ai.orchestration.session import ChatSession
from .chat.message_model import DisplayMessage, MessageKind
from .services.settings import Settings, SettingsStore
from .services.vault import LocalVaultAdapter
from .ui.events import MessageAppended
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_CHOICES: Mapping[str, PermissionChoice] = {
    "o": PermissionChoice.ONCE,
    "once": PermissionChoice.ONCE,
    "t": PermissionChoice.TOOL,
    "tool": PermissionChoice.TOOL,
    "a": PermissionChoice.ALL,
    "all": PermissionChoice.ALL,
    "d": PermissionChoice.DENY,
    "deny": PermissionChoice.DENY,
}
HELP_TEXT = (
    "Commands: /open <path>, /pending, /apply <id>, /reject <id>, /clear, /help, /quit"
)

# Returns None at end of input
LineReader = Callable[[str], Awaitable[Optional[str]]]


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure file logging; the console stays reserved for the conversation."""

    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


async def _read_stdin(prompt: str) -> Optional[str]:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


class ConsoleApp:
    """Line-oriented chat loop over a :class:`ChatSession`."""

    def __init__(
        self,
        session: ChatSession,
        *,
        reader: LineReader | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self._session = session
        self._reader = reader or _read_stdin
        self._stream = stream or sys.stdout
        session.bus.subscribe(MessageAppended, self._on_message)

    async def prompt_permission(self, request: PermissionRequest) -> None:
        """Ask on the console until a valid choice is given; end of input denies."""

        summary = ", ".join(f"{key}={value!r}" for key, value in request.arguments.items())
        question = f"Allow tool {request.tool_name}({summary})? [o]nce / [t]ool / [a]ll / [d]eny: "
        while not request.done:
            answer = await self._reader(question)
            if answer is None:
                request.resolve(PermissionChoice.DENY)
                return
            choice = _CHOICES.get(answer.strip().lower())
            if choice is None:
                self._write("Please answer o, t, a or d.")
                continue
            request.resolve(choice)

    async def handle_line(self, line: str) -> bool:
        """Process one line of input. Returns False when the user asked to quit."""

        text = line.strip()
        if not text:
            return True
        if not text.startswith("/"):
            await self._session.send_message(text)
            return True

        command, _, argument = text.partition(" ")
        argument = argument.strip()
        if command in ("/quit", "/exit"):
            return False
        if command == "/help":
            self._write(HELP_TEXT)
        elif command == "/clear":
            self._session.clear()
            self._write("Chat cleared.")
        elif command == "/pending":
            edits = self._session.pending_edits.pending()
            if not edits:
                self._write("No pending edits.")
            for edit in edits:
                self._write(f"{edit.id}  {edit.path}")
        elif command in ("/apply", "/reject") and argument:
            if command == "/apply":
                found = await self._session.apply_edit(argument)
            else:
                found = self._session.reject_edit(argument)
            if not found and argument not in self._session.pending_edits:
                self._write(f"No pending edit {argument}.")
        elif command == "/open" and argument:
            try:
                await self._session.open_document(argument)
            except (OSError, ValueError) as exc:
                self._write(f"Could not open {argument}: {exc}")
            else:
                self._write(f"Viewing {argument}")
        else:
            self._write(f"Unknown command: {text}. {HELP_TEXT}")
        return True

    async def run(self) -> None:
        self._write(f"vaultpilot ready. {HELP_TEXT}")
        while True:
            line = await self._reader("> ")
            if line is None or not await self.handle_line(line):
                break

    def _on_message(self, event: MessageAppended) -> None:
        message = event.message
        if message.kind is MessageKind.USER:
            return
        self._write(render_message(message))

    def _write(self, text: str) -> None:
        print(text, file=self._stream, flush=True)


def render_message(message: DisplayMessage) -> str:
    """Plain-text rendering of an assistant display message."""

    if message.kind is MessageKind.PENDING_EDIT:
        return f"{message.content}\n(pending id: {message.pending_edit_id}; use /apply or /reject)"
    if message.kind is MessageKind.RESEARCH:
        lines = [message.content]
        lines.extend(f"  - {result.url}" for result in message.research_results)
        return "\n".join(lines)
    if message.kind is MessageKind.ANSWER:
        return f"assistant: {message.content}"
    return message.content


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `vaultpilot` console script."""

    args = _parse_cli_args(argv)
    debug = args.debug or _env_flag("VAULTPILOT_DEBUG")
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("VAULTPILOT_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    overrides = {"vault_root": str(Path(args.vault).expanduser())} if args.vault else None
    settings = load_settings(store=store, overrides=overrides)
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    try:
        asyncio.run(_run_console(settings, allow_all=args.yes))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")


async def _run_console(settings: Settings, *, allow_all: bool = False) -> None:
    adapter = LocalVaultAdapter(settings.vault_root)
    session = ChatSession(settings, adapter)
    app = ConsoleApp(session)
    session.set_prompter(app.prompt_permission)
    if allow_all:
        session.permissions.allow_all()
    try:
        await session.refresh_file_structure()
        await app.run()
    finally:
        await session.aclose()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vaultpilot", description="Chat with an assistant about a notes vault.")
    parser.add_argument("--vault", help="Vault root directory")
    parser.add_argument("--settings", dest="settings_path", help="Path to settings.json")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--yes", action="store_true", help="Allow every tool call for this session")
    return parser.parse_args(list(argv) if argv is not None else None)


if __name__ == "__main__":  # pragma: no cover
    main()
