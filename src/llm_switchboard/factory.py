from __future__ import annotations

import logging
from typing import Any, Optional, Type

from llm_switchboard.adapters.anthropic import AnthropicAdapter
from llm_switchboard.adapters.base import ProviderAdapter
from llm_switchboard.adapters.gemini import GeminiAdapter
from llm_switchboard.adapters.openai import OpenAIAdapter
from llm_switchboard.providers import Provider, ProviderConfig, SearchProvider
from llm_switchboard.tools.search import SearchCapability, SerpAPISearch, TavilySearch
from llm_switchboard.transport import Transport

__all__ = ["create_adapter", "create_search_capability"]

# map Provider enum to its adapter; DeepSeek and Kimi speak the OpenAI format
_ADAPTER_REGISTRY: dict[Provider, Type[ProviderAdapter]] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.DEEPSEEK: OpenAIAdapter,
    Provider.KIMI: OpenAIAdapter,
}

_SEARCH_REGISTRY: dict[SearchProvider, Type[Any]] = {
    SearchProvider.TAVILY: TavilySearch,
    SearchProvider.SERPAPI: SerpAPISearch,
}


def create_adapter(
    config: ProviderConfig,
    *,
    transport: Optional[Transport] = None,
    logger: Optional[logging.Logger] = None,
    **adapter_kwargs: Any,
) -> ProviderAdapter:
    """
    Factory for the adapter matching ``config.provider``.

    Args:
        config: Provider, key, base URL and model.
        transport: Optional shared transport. If omitted the adapter creates
            and owns an `HTTPXTransport`.
        logger: Optional custom logger.
        **adapter_kwargs: Passed through to the adapter (name, default_params).
    """
    try:
        adapter_cls = _ADAPTER_REGISTRY[config.provider]
    except KeyError as exc:
        raise ValueError(f"Unsupported provider: {config.provider}") from exc

    return adapter_cls(config, transport=transport, logger=logger, **adapter_kwargs)


def create_search_capability(
    provider: SearchProvider | str,
    api_key: str,
    *,
    transport: Optional[Transport] = None,
) -> SearchCapability:
    """Factory for the web-search backend named by *provider* (``tavily`` or ``serpapi``)."""
    try:
        search_cls = _SEARCH_REGISTRY[SearchProvider(provider)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported search provider: {provider}") from exc

    return search_cls(api_key, transport=transport)
