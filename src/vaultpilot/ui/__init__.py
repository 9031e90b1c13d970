"""Interaction-surface plumbing shared by front ends."""

from .events import (
    ChatCleared,
    EditApplied,
    EditFailed,
    EditRejected,
    Event,
    EventBus,
    MessageAppended,
    PermissionRequested,
    ToolExecuted,
    TurnCompleted,
    TurnStarted,
)

__all__ = [
    "ChatCleared",
    "EditApplied",
    "EditFailed",
    "EditRejected",
    "Event",
    "EventBus",
    "MessageAppended",
    "PermissionRequested",
    "ToolExecuted",
    "TurnCompleted",
    "TurnStarted",
]
