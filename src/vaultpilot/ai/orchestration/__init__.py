"""Agent loop orchestration: permissions, dispatch, pending edits and sessions."""

from .context_builder import ContextBuilder, flatten_file_tree
from .pending_edits import PendingEdit, PendingEditApplyError, PendingEditStore
from .permissions import (
    PermissionChoice,
    PermissionDecision,
    PermissionGate,
    PermissionRequest,
    PermissionState,
    Prompter,
)
from .runner import AgentRunner, ProviderClient, RunnerConfig, RunOutcome
from .session import ChatSession
from .tool_dispatcher import DispatchResult, ToolDispatcher

__all__ = [
    "AgentRunner",
    "ChatSession",
    "ContextBuilder",
    "DispatchResult",
    "PendingEdit",
    "PendingEditApplyError",
    "PendingEditStore",
    "PermissionChoice",
    "PermissionDecision",
    "PermissionGate",
    "PermissionRequest",
    "PermissionState",
    "Prompter",
    "ProviderClient",
    "RunOutcome",
    "RunnerConfig",
    "ToolDispatcher",
    "flatten_file_tree",
]
