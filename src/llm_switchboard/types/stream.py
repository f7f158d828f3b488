"""
Canonical streaming chunks.

Every adapter maps its protocol's events onto exactly these four variants;
nothing provider-specific travels past the adapter boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = ["ContentDelta", "ToolCallStart", "ToolCallArgsDelta", "Done", "StreamChunk"]


@dataclass(frozen=True, slots=True)
class ContentDelta:
    """A piece of assistant text."""
    text: str


@dataclass(frozen=True, slots=True)
class ToolCallStart:
    """The model opened a tool call."""
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ToolCallArgsDelta:
    """A fragment of the JSON arguments for the call with this id.

    Fragments arrive in order; the full arguments are their concatenation.
    """
    id: str
    fragment: str


@dataclass(frozen=True, slots=True)
class Done:
    """The provider finished this response."""
    finish_reason: Optional[str] = None


StreamChunk = Union[ContentDelta, ToolCallStart, ToolCallArgsDelta, Done]
