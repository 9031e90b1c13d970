"""Permission gate mediating every tool call the model requests.

Resolution order: the global :class:`ToolExecutionMode`, then the session's
allow-all flag, then the session's per-tool allow list, and finally an
interactive :class:`PermissionRequest` that suspends the agent loop until
the user answers.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from ...services.settings import ToolExecutionMode

LOGGER = logging.getLogger(__name__)


class PermissionChoice(str, Enum):
    ONCE = "once"
    TOOL = "tool"
    ALL = "all"
    DENY = "deny"


@dataclass(slots=True)
class PermissionState:
    """Grants accumulated during one chat session. Grants only ever grow."""

    session_allow_all: bool = False
    session_allowed_tools: set[str] = field(default_factory=set)

    def allows(self, tool_name: str) -> bool:
        return self.session_allow_all or tool_name in self.session_allowed_tools

    def allow_tool(self, tool_name: str) -> None:
        self.session_allowed_tools.add(tool_name)

    def allow_all(self) -> None:
        self.session_allow_all = True


class PermissionRequest:
    """A pending question to the user about one tool call.

    The request can be resolved exactly once; later calls to :meth:`resolve`
    are ignored and return ``False``.
    """

    def __init__(self, tool_name: str, arguments: Mapping[str, str] | None = None) -> None:
        self.id = f"perm-{uuid.uuid4().hex[:12]}"
        self.tool_name = tool_name
        self.arguments = dict(arguments or {})
        self._future: asyncio.Future[PermissionChoice] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, choice: PermissionChoice | str) -> bool:
        if self._future.done():
            LOGGER.warning("Permission request %s for %s already resolved", self.id, self.tool_name)
            return False
        self._future.set_result(PermissionChoice(choice))
        return True

    async def wait(self, timeout: float | None = None) -> PermissionChoice:
        """Wait for the user's answer; an expired timeout counts as a denial."""

        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except asyncio.TimeoutError:
            LOGGER.info("Permission request %s for %s timed out", self.id, self.tool_name)
            self.resolve(PermissionChoice.DENY)
            return self._future.result()

    def __repr__(self) -> str:
        return f"PermissionRequest(id={self.id!r}, tool_name={self.tool_name!r}, done={self.done})"


@dataclass(slots=True, frozen=True)
class PermissionDecision:
    permitted: bool
    choice: PermissionChoice | None = None
    prompted: bool = False


Prompter = Callable[[PermissionRequest], "Awaitable[Any] | Any"]


class PermissionGate:
    """Decides whether a tool call may run, prompting the user when needed."""

    def __init__(
        self,
        state: PermissionState,
        *,
        mode: ToolExecutionMode = ToolExecutionMode.ASK,
        prompter: Prompter | None = None,
        timeout: float | None = None,
    ) -> None:
        self._state = state
        self._mode = ToolExecutionMode.parse(mode)
        self._prompter = prompter
        self._timeout = timeout
        self._pending: PermissionRequest | None = None

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def mode(self) -> ToolExecutionMode:
        return self._mode

    @mode.setter
    def mode(self, value: ToolExecutionMode | str) -> None:
        """Switch execution mode. Once ``allow_all`` is on it stays on."""

        mode = ToolExecutionMode.parse(value)
        if self._mode is ToolExecutionMode.ALLOW_ALL and mode is not ToolExecutionMode.ALLOW_ALL:
            LOGGER.warning("Ignoring switch to %s; allow_all lasts for the rest of the session", mode.value)
            return
        self._mode = mode

    @property
    def pending_request(self) -> PermissionRequest | None:
        """The request currently awaiting an answer, if any."""

        return self._pending

    async def authorize(self, tool_name: str, arguments: Mapping[str, str] | None = None) -> PermissionDecision:
        if self._mode is ToolExecutionMode.ALLOW_ALL or self._state.allows(tool_name):
            return PermissionDecision(permitted=True)
        if self._prompter is None:
            LOGGER.info("No permission prompter configured; denying %s", tool_name)
            return PermissionDecision(permitted=False, choice=PermissionChoice.DENY)

        request = PermissionRequest(tool_name, arguments)
        self._pending = request
        try:
            try:
                outcome = self._prompter(request)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                LOGGER.exception("Permission prompter failed for %s", tool_name)
                request.resolve(PermissionChoice.DENY)
            choice = await request.wait(self._timeout)
        finally:
            self._pending = None

        self._record(tool_name, choice)
        return PermissionDecision(permitted=choice is not PermissionChoice.DENY, choice=choice, prompted=True)

    def _record(self, tool_name: str, choice: PermissionChoice) -> None:
        if choice is PermissionChoice.ALL:
            self._state.allow_all()
        elif choice is PermissionChoice.TOOL:
            self._state.allow_tool(tool_name)
        LOGGER.debug("Permission for %s resolved as %s", tool_name, choice.value)


__all__ = [
    "PermissionChoice",
    "PermissionDecision",
    "PermissionGate",
    "PermissionRequest",
    "PermissionState",
    "Prompter",
]
