from .chat import ChatMessage, ChatResponse, Role, Usage
from .stream import ContentDelta, Done, StreamChunk, ToolCallArgsDelta, ToolCallStart
from .tool import ParameterProperty, ParameterSchema, SkillKind, ToolCall, ToolDefinition

__all__ = [
    "ChatMessage",
    "ChatResponse",
    "Role",
    "Usage",
    "ContentDelta",
    "Done",
    "StreamChunk",
    "ToolCallArgsDelta",
    "ToolCallStart",
    "ParameterProperty",
    "ParameterSchema",
    "SkillKind",
    "ToolCall",
    "ToolDefinition",
]
