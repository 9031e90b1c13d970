"""Agent loop: alternate provider calls and tool dispatch until an answer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol, Sequence

from ...chat.message_model import ConversationTurn
from ..client import ProviderConfig, ProviderError, ProviderReply, TextReply, ToolCall
from ..tools.tool_registry import ToolSchema
from .context_builder import ContextBuilder
from .tool_dispatcher import DispatchResult, ToolDispatcher

__all__ = [
    "AgentRunner",
    "ProviderClient",
    "RunOutcome",
    "RunnerConfig",
    "ToolCallback",
]

LOGGER = logging.getLogger(__name__)

# Invoked after each tool call has been dispatched
ToolCallback = Callable[[ToolCall, DispatchResult], None]


class ProviderClient(Protocol):
    async def complete(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        turns: Sequence[ConversationTurn],
        tools: Iterable[ToolSchema],
    ) -> ProviderReply:
        ...


@dataclass(slots=True, frozen=True)
class RunnerConfig:
    """Configuration for the agent loop.

    Attributes:
        max_iterations: Provider replies requesting tools that will be honoured
            before the turn is cut short.
    """

    max_iterations: int = 8


@dataclass(slots=True)
class RunOutcome:
    """What one user message produced."""

    text: str
    iterations: int = 0
    tool_calls: list[DispatchResult] = field(default_factory=list)
    budget_exhausted: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class AgentRunner:
    """Runs the tool loop for a single user message.

    Tool exchanges are recorded as scratch turns that live only for the
    duration of :meth:`run`; the caller's history is never mutated. Tool calls
    within one reply are dispatched strictly in order.
    """

    def __init__(
        self,
        client: ProviderClient,
        dispatcher: ToolDispatcher,
        context_builder: ContextBuilder,
        *,
        config: RunnerConfig | None = None,
    ) -> None:
        self._client = client
        self._dispatcher = dispatcher
        self._context_builder = context_builder
        self._config = config or RunnerConfig()

    @property
    def config(self) -> RunnerConfig:
        return self._config

    async def run(
        self,
        provider: ProviderConfig,
        turns: Sequence[ConversationTurn],
        *,
        on_tool: ToolCallback | None = None,
    ) -> RunOutcome:
        scratch = list(turns)
        outcome = RunOutcome(text="")
        max_iterations = max(0, self._config.max_iterations)

        while True:
            system_prompt = self._context_builder.build()
            try:
                reply = await self._client.complete(provider, system_prompt, scratch, self._dispatcher.registry)
            except ProviderError as exc:
                LOGGER.warning("Provider %s failed: %s", provider.name, exc.message)
                return self._fail(outcome, exc.message)
            except Exception as exc:
                LOGGER.exception("Unexpected failure while calling %s", provider.name)
                return self._fail(outcome, str(exc) or "Failed to get response")

            if isinstance(reply, TextReply):
                outcome.text = reply.text
                return outcome

            if outcome.iterations >= max_iterations:
                LOGGER.warning("Tool loop reached max iterations (%d); stopping", max_iterations)
                outcome.budget_exhausted = True
                outcome.text = f"Tool budget exceeded after {outcome.iterations} tool rounds; stopping here."
                return outcome

            outcome.iterations += 1
            for call in reply.calls:
                LOGGER.debug("Iteration %d: dispatching %s", outcome.iterations, call.name)
                result = await self._dispatcher.dispatch(call.name, call.arguments)
                outcome.tool_calls.append(result)
                scratch.append(ConversationTurn(role="assistant", content=f"[Using tool: {call.name}]"))
                scratch.append(ConversationTurn(role="user", content=f"Tool result: {result.text}"))
                if on_tool is not None:
                    on_tool(call, result)

    @staticmethod
    def _fail(outcome: RunOutcome, message: str) -> RunOutcome:
        outcome.error = message
        outcome.text = f"Error: {message}"
        return outcome
