from .anthropic import AnthropicAdapter
from .base import ProviderAdapter, StreamDecoder
from .gemini import GeminiAdapter
from .openai import OpenAIAdapter

__all__ = [
    "ProviderAdapter",
    "StreamDecoder",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
]
