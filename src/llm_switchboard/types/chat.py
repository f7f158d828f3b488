"""Canonical chat types shared by every provider adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from llm_switchboard.types.tool import ToolCall

__all__ = ["Role", "ChatMessage", "ChatResponse", "Usage"]

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """
    One message of a conversation, independent of any backend's wire format.

    ``tool_call_id`` is set only on ``tool`` messages and names the call the
    message answers. Instances are never mutated after creation.
    """

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role="user", content=content)

    @classmethod
    def assistant(
        cls,
        content: Optional[str] = None,
        tool_calls: Optional[list[ToolCall]] = None,
    ) -> "ChatMessage":
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(slots=True)
class Usage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass
class ChatResponse:
    """Unified non-streaming response object for all LLM providers."""

    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None
    raw: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def __repr__(self) -> str:
        content = self.content or ""
        preview = content[:75] + "..." if len(content) > 75 else content
        calls = [tc.name for tc in self.tool_calls or []]
        return f"{self.__class__.__name__}(content={preview!r}, tool_calls={calls!r})"
