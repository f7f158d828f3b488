from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Optional

from dotenv import load_dotenv

load_dotenv()

_logger = logging.getLogger(__name__)


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
    KIMI = "kimi"


class LLMMode(StrEnum):
    BUILTIN = "builtin"  # shared key, daily quota applies
    CUSTOM = "custom"  # caller's own key


class SearchProvider(StrEnum):
    TAVILY = "tavily"
    SERPAPI = "serpapi"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.DEEPSEEK: "DEEPSEEK_API_KEY",
    Provider.KIMI: "KIMI_API_KEY",
}

DEFAULT_BASE_URLS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.ANTHROPIC: "https://api.anthropic.com/v1",
    Provider.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
    Provider.DEEPSEEK: "https://api.deepseek.com/v1",
    Provider.KIMI: "https://api.moonshot.cn/v1",
}

DEFAULT_MODELS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "gpt-4o-mini",
    Provider.ANTHROPIC: "claude-3-5-sonnet-20241022",
    Provider.GEMINI: "gemini-1.5-flash",
    Provider.DEEPSEEK: "deepseek-chat",
    Provider.KIMI: "moonshot-v1-auto",
}

BUILTIN_PROVIDER: Final = Provider.KIMI
BUILTIN_KEY_ENV: Final = "LLM_BUILTIN_API_KEY"


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise RuntimeError."""
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise RuntimeError(f"No config for {provider!s}") from None

    key = os.environ.get(env_var)
    if not key:
        raise RuntimeError(f"{env_var} missing")
    return key


@dataclass(slots=True)
class ProviderConfig:
    """
    Everything an adapter needs to reach one backend.

    ``base_url`` and ``model`` may be left empty; the provider defaults are
    used in that case.
    """

    provider: Provider
    api_key: str
    base_url: Optional[str] = None
    model: Optional[str] = None
    mode: LLMMode = LLMMode.CUSTOM

    @property
    def is_quota_limited(self) -> bool:
        return self.mode is LLMMode.BUILTIN

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_BASE_URLS[self.provider]).rstrip("/")

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def __repr__(self) -> str:
        # never print the key
        return (
            f"{self.__class__.__name__}(provider={self.provider.value!r}, "
            f"model={self.resolved_model!r}, mode={self.mode.value!r})"
        )


def load_provider_config(mode: Optional[LLMMode] = None) -> Optional[ProviderConfig]:
    """
    Build a `ProviderConfig` from the environment.

    Reads ``LLM_MODE`` (``builtin`` by default), ``LLM_PROVIDER``,
    ``LLM_MODEL``, ``LLM_BASE_URL`` and the matching ``<PROVIDER>_API_KEY``;
    builtin mode reads ``LLM_BUILTIN_API_KEY`` and always talks to Kimi.

    Returns:
        The config, or None when no usable credential is available.
    """
    try:
        mode = LLMMode(mode or os.environ.get("LLM_MODE") or LLMMode.BUILTIN)
    except ValueError:
        _logger.warning("Unknown LLM_MODE %r", os.environ.get("LLM_MODE"))
        return None

    if mode is LLMMode.BUILTIN:
        key = os.environ.get(BUILTIN_KEY_ENV)
        if not key:
            return None
        return ProviderConfig(provider=BUILTIN_PROVIDER, api_key=key, mode=mode)

    raw_provider = os.environ.get("LLM_PROVIDER")
    if not raw_provider:
        return None
    try:
        provider = Provider(raw_provider.lower())
    except ValueError:
        _logger.warning("Unknown LLM_PROVIDER %r", raw_provider)
        return None

    try:
        key = get_api_key(provider)
    except RuntimeError:
        return None

    return ProviderConfig(
        provider=provider,
        api_key=key,
        base_url=os.environ.get("LLM_BASE_URL") or None,
        model=os.environ.get("LLM_MODEL") or None,
        mode=mode,
    )


def load_search_config() -> Optional[tuple[SearchProvider, str]]:
    """``(SEARCH_PROVIDER, SEARCH_API_KEY)`` from the environment, or None if either is missing."""
    raw = os.environ.get("SEARCH_PROVIDER")
    key = os.environ.get("SEARCH_API_KEY")
    if not raw or not key:
        return None
    try:
        return SearchProvider(raw.lower()), key
    except ValueError:
        _logger.warning("Unknown SEARCH_PROVIDER %r", raw)
        return None


__all__ = [
    "Provider",
    "LLMMode",
    "SearchProvider",
    "ProviderConfig",
    "DEFAULT_BASE_URLS",
    "DEFAULT_MODELS",
    "get_api_key",
    "load_provider_config",
    "load_search_config",
]
