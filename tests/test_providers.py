"""Tests for environment configuration and the adapter/search factories."""

import pytest

from llm_switchboard.adapters import AnthropicAdapter, GeminiAdapter, OpenAIAdapter
from llm_switchboard.factory import create_adapter, create_search_capability
from llm_switchboard.providers import (
    LLMMode,
    Provider,
    ProviderConfig,
    SearchProvider,
    get_api_key,
    load_provider_config,
    load_search_config,
)
from llm_switchboard.tools.search import SerpAPISearch, TavilySearch

ENV_NAMES = [
    "LLM_MODE",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_BASE_URL",
    "LLM_BUILTIN_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "DEEPSEEK_API_KEY",
    "KIMI_API_KEY",
    "SEARCH_PROVIDER",
    "SEARCH_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


class TestProviderConfig:
    def test_defaults_fill_in(self):
        config = ProviderConfig(provider=Provider.DEEPSEEK, api_key="k")

        assert config.resolved_base_url == "https://api.deepseek.com/v1"
        assert config.resolved_model == "deepseek-chat"
        assert not config.is_quota_limited

    def test_trailing_slash_is_trimmed(self):
        config = ProviderConfig(provider=Provider.OPENAI, api_key="k", base_url="http://proxy.local/v1/")

        assert config.resolved_base_url == "http://proxy.local/v1"

    def test_repr_hides_key(self):
        config = ProviderConfig(provider=Provider.OPENAI, api_key="sk-secret")

        assert "sk-secret" not in repr(config)
        assert "openai" in repr(config)


class TestLoadProviderConfig:
    def test_builtin_is_default(self, monkeypatch):
        monkeypatch.setenv("LLM_BUILTIN_API_KEY", "shared")

        config = load_provider_config()

        assert config.provider is Provider.KIMI
        assert config.api_key == "shared"
        assert config.mode is LLMMode.BUILTIN
        assert config.is_quota_limited

    def test_builtin_without_key(self):
        assert load_provider_config() is None

    def test_custom_mode(self, monkeypatch):
        monkeypatch.setenv("LLM_MODE", "custom")
        monkeypatch.setenv("LLM_PROVIDER", "Anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-key")
        monkeypatch.setenv("LLM_MODEL", "claude-3-haiku-20240307")

        config = load_provider_config()

        assert config.provider is Provider.ANTHROPIC
        assert config.api_key == "ant-key"
        assert config.resolved_model == "claude-3-haiku-20240307"
        assert not config.is_quota_limited

    def test_explicit_mode_argument_wins(self, monkeypatch):
        monkeypatch.setenv("LLM_BUILTIN_API_KEY", "shared")
        monkeypatch.setenv("LLM_PROVIDER", "gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")

        config = load_provider_config(LLMMode.CUSTOM)

        assert config.provider is Provider.GEMINI

    @pytest.mark.parametrize(
        "env",
        [
            {"LLM_MODE": "custom"},
            {"LLM_MODE": "custom", "LLM_PROVIDER": "openai"},
            {"LLM_MODE": "custom", "LLM_PROVIDER": "mistral", "OPENAI_API_KEY": "k"},
            {"LLM_MODE": "turbo", "LLM_BUILTIN_API_KEY": "k"},
        ],
    )
    def test_unusable_configuration(self, monkeypatch, env):
        for name, value in env.items():
            monkeypatch.setenv(name, value)

        assert load_provider_config() is None

    def test_get_api_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        assert get_api_key(Provider.OPENAI) == "sk-test"
        with pytest.raises(RuntimeError, match="GEMINI_API_KEY missing"):
            get_api_key(Provider.GEMINI)


class TestLoadSearchConfig:
    def test_configured(self, monkeypatch):
        monkeypatch.setenv("SEARCH_PROVIDER", "SerpAPI")
        monkeypatch.setenv("SEARCH_API_KEY", "s-key")

        assert load_search_config() == (SearchProvider.SERPAPI, "s-key")

    def test_missing_key(self, monkeypatch):
        monkeypatch.setenv("SEARCH_PROVIDER", "tavily")

        assert load_search_config() is None

    def test_unknown_provider(self, monkeypatch):
        monkeypatch.setenv("SEARCH_PROVIDER", "bing")
        monkeypatch.setenv("SEARCH_API_KEY", "k")

        assert load_search_config() is None


class TestFactory:
    @pytest.mark.parametrize(
        "provider, adapter_cls",
        [
            (Provider.OPENAI, OpenAIAdapter),
            (Provider.ANTHROPIC, AnthropicAdapter),
            (Provider.GEMINI, GeminiAdapter),
            (Provider.DEEPSEEK, OpenAIAdapter),
            (Provider.KIMI, OpenAIAdapter),
        ],
    )
    def test_adapter_per_provider(self, provider, adapter_cls, fake_transport):
        adapter = create_adapter(ProviderConfig(provider=provider, api_key="k"), transport=fake_transport)

        assert type(adapter) is adapter_cls
        assert adapter.transport is fake_transport

    def test_compatible_backends_use_their_own_base_url(self, fake_transport):
        adapter = create_adapter(ProviderConfig(provider=Provider.KIMI, api_key="k"), transport=fake_transport)

        assert adapter.endpoint(stream=False) == "https://api.moonshot.cn/v1/chat/completions"

    def test_adapter_kwargs_pass_through(self, fake_transport):
        adapter = create_adapter(
            ProviderConfig(provider=Provider.OPENAI, api_key="k"),
            transport=fake_transport,
            name="primary",
            default_params={"temperature": 0.2},
        )

        assert adapter.name == "primary"
        assert adapter.default_params == {"temperature": 0.2}

    @pytest.mark.parametrize(
        "provider, search_cls",
        [("tavily", TavilySearch), (SearchProvider.SERPAPI, SerpAPISearch)],
    )
    def test_search_capability(self, provider, search_cls, fake_transport):
        search = create_search_capability(provider, "key", transport=fake_transport)

        assert isinstance(search, search_cls)

    def test_unknown_search_provider(self):
        with pytest.raises(ValueError, match="Unsupported search provider"):
            create_search_capability("bing", "key")
