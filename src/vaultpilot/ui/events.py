"""Event bus used by the chat session to notify whatever renders it.

Front ends subscribe to the event types they care about; the session never
depends on a particular UI.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, DefaultDict, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..ai.orchestration.permissions import PermissionRequest
    from ..chat.message_model import DisplayMessage

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the bus."""


@dataclass(slots=True)
class MessageAppended(Event):
    """A display message was added to the chat log."""

    message: "DisplayMessage"


@dataclass(slots=True)
class ChatCleared(Event):
    """The chat log was emptied. Pending edits are unaffected."""


@dataclass(slots=True)
class PermissionRequested(Event):
    """A tool call is waiting for the user; resolve ``request`` to continue."""

    request: "PermissionRequest"


@dataclass(slots=True)
class TurnStarted(Event):
    prompt: str


@dataclass(slots=True)
class ToolExecuted(Event):
    """Emitted after each tool call of a turn, whether or not it ran.

    Attributes:
        tool_name: The tool the model asked for.
        result: Text handed back to the model.
        executed: False when the call was refused before reaching a handler.
        duration_ms: Time spent, including any permission prompt.
    """

    tool_name: str
    result: str
    executed: bool
    duration_ms: float = 0.0


@dataclass(slots=True)
class TurnCompleted(Event):
    text: str
    success: bool
    iterations: int = 0
    budget_exhausted: bool = False


@dataclass(slots=True)
class EditApplied(Event):
    edit_id: str
    path: str


@dataclass(slots=True)
class EditRejected(Event):
    edit_id: str
    path: str


@dataclass(slots=True)
class EditFailed(Event):
    edit_id: str
    path: str
    error: str


class EventBus:
    """A typed publish-subscribe event bus.

    Bound-method handlers are held weakly so a discarded front end stops
    receiving events without unsubscribing. Handler exceptions are logged and
    do not stop delivery to the remaining handlers.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed handler %s to event type %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: Event) -> int:
        """Deliver ``event`` and return how many live handlers received it."""

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return 0

        delivered = 0
        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            delivered += 1
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        for handler_ref in dead:
            handlers.remove(handler_ref)
        return delivered

    def clear(self) -> None:
        self._handlers.clear()


class _HandlerRef:
    """Strong reference for plain callables, weak reference for bound methods."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: object, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "ChatCleared",
    "EditApplied",
    "EditFailed",
    "EditRejected",
    "Event",
    "EventBus",
    "Handler",
    "MessageAppended",
    "PermissionRequested",
    "ToolExecuted",
    "TurnCompleted",
    "TurnStarted",
]
