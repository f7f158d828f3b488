"""
LLM Switchboard - one streaming interface over OpenAI-style, Anthropic and
Gemini backends, plus a bounded tool-calling agent loop.
"""

from .adapters import AnthropicAdapter, GeminiAdapter, OpenAIAdapter, ProviderAdapter
from .agent import (
    AgentOrchestrator,
    AgentSession,
    AgentState,
    AgentStatus,
    DailyUsageLimiter,
    InMemoryConversationStore,
)
from .errors import SwitchboardError
from .factory import create_adapter, create_search_capability
from .providers import LLMMode, Provider, ProviderConfig, get_api_key, load_provider_config
from .tools import ToolExecutor
from .transport import HTTPXTransport, Transport
from .types import (
    ChatMessage,
    ChatResponse,
    ContentDelta,
    Done,
    StreamChunk,
    ToolCall,
    ToolCallArgsDelta,
    ToolCallStart,
    ToolDefinition,
)

__version__ = "0.1.0"

__all__ = [
    "ProviderAdapter",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "AgentOrchestrator",
    "AgentSession",
    "AgentState",
    "AgentStatus",
    "DailyUsageLimiter",
    "InMemoryConversationStore",
    "SwitchboardError",
    "create_adapter",
    "create_search_capability",
    "LLMMode",
    "Provider",
    "ProviderConfig",
    "get_api_key",
    "load_provider_config",
    "ToolExecutor",
    "HTTPXTransport",
    "Transport",
    "ChatMessage",
    "ChatResponse",
    "ContentDelta",
    "Done",
    "StreamChunk",
    "ToolCall",
    "ToolCallArgsDelta",
    "ToolCallStart",
    "ToolDefinition",
]
