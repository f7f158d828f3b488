"""Conversation persistence interface and an in-memory implementation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional, Protocol

from llm_switchboard.types import ChatMessage

__all__ = ["ConversationStore", "InMemoryConversationStore"]


class ConversationStore(Protocol):
    def fetch_recent_messages(self, conversation_id: str, limit: int) -> list[ChatMessage]:
        """The last *limit* messages of the conversation, oldest first."""
        ...

    def append(self, conversation_id: str, message: ChatMessage) -> None:
        ...

    def touch(self, conversation_id: str) -> None:
        """Mark the conversation as updated now."""
        ...


class InMemoryConversationStore:
    """Ordered per-conversation message lists. Not shared between processes."""

    def __init__(self) -> None:
        self._messages: defaultdict[str, list[ChatMessage]] = defaultdict(list)
        self.updated_at: dict[str, datetime] = {}

    def fetch_recent_messages(self, conversation_id: str, limit: int) -> list[ChatMessage]:
        if limit <= 0:
            return []
        return list(self._messages.get(conversation_id, [])[-limit:])

    def append(self, conversation_id: str, message: ChatMessage) -> None:
        self._messages[conversation_id].append(message)

    def touch(self, conversation_id: str) -> None:
        self.updated_at[conversation_id] = datetime.now(timezone.utc)

    def messages(self, conversation_id: str) -> list[ChatMessage]:
        return list(self._messages.get(conversation_id, []))

    def last_updated(self, conversation_id: str) -> Optional[datetime]:
        return self.updated_at.get(conversation_id)
