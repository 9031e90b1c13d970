"""Conversation turns and display messages."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Literal


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex[:12]}"


TurnRole = Literal["user", "assistant"]


class MessageKind(str, Enum):
    """What a display message represents in the chat log."""

    USER = "user"
    ANSWER = "answer"
    ERROR = "error"
    TOOL_LOG = "tool_log"
    NOTICE = "notice"
    PENDING_EDIT = "pending_edit"
    RESEARCH = "research"

    @property
    def conversational(self) -> bool:
        return self in (MessageKind.USER, MessageKind.ANSWER)


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One entry of the history sent to the provider."""

    role: TurnRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class ResearchResult:
    url: str
    snippet: str


@dataclass(frozen=True, slots=True)
class DisplayMessage:
    """Represents a row inside the chat history list."""

    role: TurnRole
    content: str
    kind: MessageKind = MessageKind.ANSWER
    id: str = field(default_factory=_new_message_id)
    timestamp: datetime = field(default_factory=_utcnow)
    pending_edit_id: str | None = None
    research_results: tuple[ResearchResult, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the message for logging or persistence."""

        return {
            "id": self.id,
            "role": self.role,
            "kind": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "pending_edit_id": self.pending_edit_id,
            "research_results": [
                {"url": result.url, "snippet": result.snippet} for result in self.research_results
            ],
        }


class ChatLog:
    """Ordered, append-only list of display messages."""

    def __init__(self, messages: Iterable[DisplayMessage] | None = None) -> None:
        self._messages: list[DisplayMessage] = list(messages or [])

    def append(self, message: DisplayMessage) -> DisplayMessage:
        self._messages.append(message)
        return message

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> tuple[DisplayMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def find(self, message_id: str) -> DisplayMessage | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def conversation_turns(self) -> list[ConversationTurn]:
        """Rebuild provider turns from user prompts and final answers only."""

        return [
            ConversationTurn(role=message.role, content=message.content)
            for message in self._messages
            if message.kind.conversational
        ]
