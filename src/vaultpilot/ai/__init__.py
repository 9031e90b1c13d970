"""Assistant core: provider client, tools and the agent loop."""

from .client import (
    AIClient,
    ClientSettings,
    ProviderConfig,
    ProviderError,
    ProviderProtocol,
    TextReply,
    ToolCall,
    ToolCallReply,
)
from .orchestration import ChatSession

__all__ = [
    "AIClient",
    "ChatSession",
    "ClientSettings",
    "ProviderConfig",
    "ProviderError",
    "ProviderProtocol",
    "TextReply",
    "ToolCall",
    "ToolCallReply",
]
