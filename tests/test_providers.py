"""Provider tests with mocked SDK clients.

Tests request shape, text extraction, SDK error translation, and the
registry factory.
"""

from unittest.mock import MagicMock

import anthropic
import httpx
import openai
import pytest

from mingzi.config import CustomProviderConfig
from mingzi.core.providers import available_providers, get_provider
from mingzi.core.providers.anthropic import AnthropicProvider
from mingzi.core.providers.base import SamplingParams
from mingzi.core.providers.openai_compat import OpenAICompatProvider
from mingzi.errors import ProviderError

SAMPLING = SamplingParams(temperature=0.8, max_tokens=1200, top_p=0.9)


def _make_openai_provider(**overrides):
    """Create an OpenAICompatProvider via __new__ with all required attrs set.

    Bypasses __init__ (no API key validation) for unit testing with mocked clients.
    """
    provider = OpenAICompatProvider.__new__(OpenAICompatProvider)
    defaults = {
        "_api_key": "test-key",
        "_timeout": None,
        "_base_url": "",
        "provider_name": "openrouter",
        "_default_model": "google/gemini-2.5-flash",
        "_client": MagicMock(),
        "last_usage": None,
    }
    defaults.update(overrides)
    for k, v in defaults.items():
        setattr(provider, k, v)
    return provider


def _make_claude_provider(**overrides):
    """Create an AnthropicProvider via __new__ with a mocked client."""
    provider = AnthropicProvider.__new__(AnthropicProvider)
    defaults = {
        "_api_key": "test-key",
        "_timeout": None,
        "_base_url": "",
        "_client": MagicMock(),
        "last_usage": None,
    }
    defaults.update(overrides)
    for k, v in defaults.items():
        setattr(provider, k, v)
    return provider


# =============================================================================
# Mock response factories
# =============================================================================


def _make_chat_response(content: str | None = '{"chinese": "李心"}'):
    """Create a mock Chat Completions response."""
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    usage = MagicMock()
    usage.prompt_tokens = 120
    usage.completion_tokens = 60
    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    return response


def _make_claude_response(*texts: str):
    """Create a mock Messages API response with text blocks."""
    blocks = []
    for text in texts:
        block = MagicMock()
        block.type = "text"
        block.text = text
        blocks.append(block)
    usage = MagicMock()
    usage.input_tokens = 80
    usage.output_tokens = 40
    response = MagicMock()
    response.content = blocks
    response.usage = usage
    return response


# =============================================================================
# OpenAI-compatible provider
# =============================================================================


class TestOpenAICompatProvider:
    """Chat Completions provider."""

    def test_returns_content(self):
        provider = _make_openai_provider()
        provider._client.chat.completions.create.return_value = _make_chat_response("hi")
        assert provider.complete("sys", "prompt", SAMPLING) == "hi"

    def test_request_shape(self):
        provider = _make_openai_provider()
        create = provider._client.chat.completions.create
        create.return_value = _make_chat_response()
        provider.complete("be an expert", "make a name", SAMPLING, model="openai/gpt-4o")

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o"
        assert kwargs["messages"] == [
            {"role": "system", "content": "be an expert"},
            {"role": "user", "content": "make a name"},
        ]
        assert kwargs["temperature"] == 0.8
        assert kwargs["max_tokens"] == 1200
        assert kwargs["top_p"] == 0.9

    def test_default_model_when_none(self):
        provider = _make_openai_provider()
        create = provider._client.chat.completions.create
        create.return_value = _make_chat_response()
        provider.complete("s", "p", SAMPLING)
        assert create.call_args.kwargs["model"] == "google/gemini-2.5-flash"

    def test_records_usage(self):
        provider = _make_openai_provider()
        provider._client.chat.completions.create.return_value = _make_chat_response()
        provider.complete("s", "p", SAMPLING)
        assert provider.last_usage.input_tokens == 120
        assert provider.last_usage.output_tokens == 60

    def test_empty_content_is_provider_error(self):
        provider = _make_openai_provider()
        provider._client.chat.completions.create.return_value = _make_chat_response(None)
        with pytest.raises(ProviderError, match="No response content"):
            provider.complete("s", "p", SAMPLING)

    def test_no_choices_is_provider_error(self):
        provider = _make_openai_provider()
        response = _make_chat_response()
        response.choices = []
        provider._client.chat.completions.create.return_value = response
        with pytest.raises(ProviderError):
            provider.complete("s", "p", SAMPLING)

    def test_sdk_error_translated(self):
        provider = _make_openai_provider()
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        provider._client.chat.completions.create.side_effect = openai.APITimeoutError(
            request=request
        )
        with pytest.raises(ProviderError, match="APITimeoutError"):
            provider.complete("s", "p", SAMPLING)

    def test_single_call_per_complete(self):
        provider = _make_openai_provider()
        create = provider._client.chat.completions.create
        create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://example.com")
        )
        with pytest.raises(ProviderError):
            provider.complete("s", "p", SAMPLING)
        assert create.call_count == 1

    def test_missing_key_raises(self):
        with pytest.raises(ProviderError, match="API key not found"):
            OpenAICompatProvider("", provider_label="groq")

    def test_sdk_client_has_retries_disabled(self):
        provider = OpenAICompatProvider(
            "sk-test", base_url="https://example.com/v1", timeout=12
        )
        client = provider._get_client()
        assert client.max_retries == 0
        assert str(client.base_url).startswith("https://example.com/v1")


# =============================================================================
# Anthropic provider
# =============================================================================


class TestAnthropicProvider:
    """Messages API provider."""

    def test_joins_text_blocks(self):
        provider = _make_claude_provider()
        provider._client.messages.create.return_value = _make_claude_response('{"a"', ": 1}")
        assert provider.complete("s", "p", SAMPLING) == '{"a": 1}'

    def test_system_prompt_top_level(self):
        provider = _make_claude_provider()
        create = provider._client.messages.create
        create.return_value = _make_claude_response("ok")
        provider.complete("be an expert", "make a name", SAMPLING)
        kwargs = create.call_args.kwargs
        assert kwargs["system"] == "be an expert"
        assert kwargs["messages"] == [{"role": "user", "content": "make a name"}]
        assert kwargs["model"] == "claude-haiku-4-5"

    def test_sends_temperature_without_top_p(self):
        provider = _make_claude_provider()
        create = provider._client.messages.create
        create.return_value = _make_claude_response("ok")
        provider.complete("s", "p", SAMPLING)
        kwargs = create.call_args.kwargs
        assert kwargs["temperature"] == 0.8
        assert kwargs["max_tokens"] == 1200
        assert "top_p" not in kwargs

    def test_records_usage(self):
        provider = _make_claude_provider()
        provider._client.messages.create.return_value = _make_claude_response("ok")
        provider.complete("s", "p", SAMPLING)
        assert provider.last_usage.input_tokens == 80
        assert provider.last_usage.output_tokens == 40

    def test_empty_reply_is_provider_error(self):
        provider = _make_claude_provider()
        provider._client.messages.create.return_value = _make_claude_response()
        with pytest.raises(ProviderError):
            provider.complete("s", "p", SAMPLING)

    def test_sdk_error_translated(self):
        provider = _make_claude_provider()
        provider._client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        with pytest.raises(ProviderError):
            provider.complete("s", "p", SAMPLING)

    def test_missing_key_raises(self):
        with pytest.raises(ProviderError):
            AnthropicProvider("")


# =============================================================================
# Registry
# =============================================================================


class TestGetProvider:
    """Registry factory."""

    def test_openrouter(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test")
        provider = get_provider("openrouter", timeout=30)
        assert isinstance(provider, OpenAICompatProvider)
        assert provider.provider_name == "openrouter"
        assert provider._base_url == "https://openrouter.ai/api/v1"
        assert provider._timeout == 30

    def test_openrouter_falls_back_to_openai_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        provider = get_provider("openrouter")
        assert provider._api_key == "sk-openai"

    def test_anthropic(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert isinstance(get_provider("anthropic"), AnthropicProvider)

    def test_custom_provider(self, monkeypatch):
        monkeypatch.setenv("LOCAL_KEY", "local-secret")
        custom = {
            "local": CustomProviderConfig(
                base_url="http://localhost:8000/v1", api_key_env="LOCAL_KEY"
            )
        }
        provider = get_provider("local", custom)
        assert provider.provider_name == "local"
        assert provider._base_url == "http://localhost:8000/v1"
        assert provider._api_key == "local-secret"

    def test_unknown_provider(self, monkeypatch):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_provider("nope")

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        with pytest.raises(ProviderError):
            get_provider("deepseek")

    def test_available_providers(self):
        names = available_providers({"local": CustomProviderConfig()})
        assert {"openrouter", "openai", "anthropic", "deepseek", "local"} <= set(names)
