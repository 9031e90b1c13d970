"""Routes model tool calls through the permission gate to their handlers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping

from ...chat.message_model import MessageKind
from ..tools.base import BaseTool, ToolContext
from ..tools.errors import PermissionDeniedError, ToolError, UnknownToolError
from ..tools.tool_registry import ToolName, ToolRegistry
from .permissions import PermissionDecision, PermissionGate

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchResult:
    """Result of a tool dispatch operation.

    Attributes:
        tool_name: Name the model asked for.
        arguments: Arguments as received from the model.
        text: What the model will see as the tool result.
        executed: Whether the handler actually ran.
        error: Set when the call was refused before reaching a handler.
        decision: The permission outcome, when the gate was consulted.
        execution_time_ms: Wall time including any permission prompt.
    """

    tool_name: str
    arguments: dict[str, Any]
    text: str
    executed: bool = False
    error: ToolError | None = None
    decision: PermissionDecision | None = None
    execution_time_ms: float = 0.0


class ToolDispatcher:
    """Dispatches tool calls to their handlers.

    Construction fails unless every :class:`ToolName` has both a schema and a
    handler, so a tool can never be offered to the model without an
    implementation behind it.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        handlers: Mapping[ToolName, BaseTool],
        gate: PermissionGate,
        context: ToolContext,
    ) -> None:
        missing_handlers = [tool.value for tool in ToolName if tool not in handlers]
        missing_schemas = [tool.value for tool in ToolName if registry.get(tool) is None]
        if missing_handlers or missing_schemas:
            raise ValueError(
                f"Tool table incomplete; handlers missing for {missing_handlers}, "
                f"schemas missing for {missing_schemas}"
            )
        self._registry = registry
        self._handlers = dict(handlers)
        self._gate = gate
        self._context = context

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def gate(self) -> PermissionGate:
        return self._gate

    @property
    def context(self) -> ToolContext:
        return self._context

    async def dispatch(self, tool_name: str, arguments: Mapping[str, Any]) -> DispatchResult:
        """Validate, authorize and run one tool call. Never raises for tool failures."""

        start_time = time.perf_counter()
        result = await self._dispatch(tool_name, dict(arguments))
        result.execution_time_ms = (time.perf_counter() - start_time) * 1000.0
        LOGGER.debug(
            "Dispatched %s (executed=%s) in %.1fms",
            tool_name,
            result.executed,
            result.execution_time_ms,
        )
        return result

    async def _dispatch(self, tool_name: str, arguments: dict[str, Any]) -> DispatchResult:
        schema = self._registry.get(tool_name)
        if schema is None:
            error: ToolError = UnknownToolError(tool_name)
            LOGGER.warning("Model requested unknown tool %s", tool_name)
            return DispatchResult(tool_name, arguments, error.to_text(), error=error)

        try:
            validated = schema.validate(arguments)
        except ToolError as exc:
            LOGGER.info("Rejected %s call: %s", tool_name, exc)
            return DispatchResult(tool_name, arguments, exc.to_text(), error=exc)

        decision = await self._gate.authorize(tool_name, validated)
        if not decision.permitted:
            error = PermissionDeniedError(tool_name)
            self._context.post(error.to_text(), MessageKind.NOTICE)
            return DispatchResult(tool_name, arguments, error.to_text(), error=error, decision=decision)

        handler = self._handlers[schema.name]
        text = await handler.run(self._context, validated)
        return DispatchResult(tool_name, arguments, text, executed=True, decision=decision)


__all__ = ["DispatchResult", "ToolDispatcher"]
