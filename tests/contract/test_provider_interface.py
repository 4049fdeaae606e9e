"""Contract tests for LLM provider interface compliance.

Contract tests are parametrized over all registered providers to ensure
uniform behavior regardless of which backend answers the oracle.
"""

from __future__ import annotations

import inspect

import pytest

from patterncache.core.config import AppConfig
from patterncache.providers import BaseLLMProvider, LLMProvider, ProviderType
from patterncache.providers.anthropic import AnthropicProvider
from patterncache.providers.openai import OpenAIProvider
from tests.mocks.mock_oracle import MockProvider

# All provider classes to test
PROVIDER_CLASSES: list[type[BaseLLMProvider]] = [
    AnthropicProvider,
    OpenAIProvider,
]


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


class TestProviderProtocolCompliance:
    """Verify all providers implement the LLMProvider protocol."""

    @pytest.mark.parametrize("provider_class", PROVIDER_CLASSES)
    def test_implements_llmprovider_protocol(
        self, provider_class: type[BaseLLMProvider], config: AppConfig
    ) -> None:
        assert isinstance(provider_class(config), LLMProvider)

    def test_mock_provider_implements_protocol(self) -> None:
        assert isinstance(MockProvider(), LLMProvider)

    @pytest.mark.parametrize("provider_class", PROVIDER_CLASSES)
    def test_reports_provider_type(
        self, provider_class: type[BaseLLMProvider], config: AppConfig
    ) -> None:
        provider = provider_class(config)
        assert isinstance(provider.provider_type, ProviderType)

    @pytest.mark.parametrize("provider_class", PROVIDER_CLASSES)
    def test_complete_is_coroutine(
        self, provider_class: type[BaseLLMProvider], config: AppConfig
    ) -> None:
        assert inspect.iscoroutinefunction(provider_class(config).complete)

    @pytest.mark.parametrize("provider_class", PROVIDER_CLASSES)
    def test_construction_needs_no_api_key(
        self,
        provider_class: type[BaseLLMProvider],
        config: AppConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        provider = provider_class(config)
        assert provider.default_model


class TestProviderSpecifics:
    def test_anthropic(self, config: AppConfig) -> None:
        provider = AnthropicProvider(config)
        assert provider.provider_type == ProviderType.ANTHROPIC
        assert "claude" in provider.default_model

    def test_openai(self, config: AppConfig) -> None:
        provider = OpenAIProvider(config)
        assert provider.provider_type == ProviderType.OPENAI
        assert "gpt" in provider.default_model
