"""Chat log data models."""

from .message_model import ChatLog, ConversationTurn, DisplayMessage, MessageKind, ResearchResult

__all__ = ["ChatLog", "ConversationTurn", "DisplayMessage", "MessageKind", "ResearchResult"]
