"""LLM Provider registry and factory.

Provides:
- _BUILTIN_REGISTRY: Registry of known provider names → factory info
- get_provider(): Create a provider instance from a provider name
"""

import importlib

from .base import LLMProvider, SamplingParams, TokenUsage
from ...config import (
    get_api_key_for_provider,
    parse_model_string,
    CustomProviderConfig,
)
from ...errors import ProviderError


# =============================================================================
# Provider Registry
# =============================================================================

# Each entry: (module, class_name, default_kwargs)
# Lazy-imported to avoid loading all SDKs at startup.
_BUILTIN_REGISTRY: dict[str, dict] = {
    "openai": {
        "module": ".openai_compat",
        "class": "OpenAICompatProvider",
        "kwargs": {
            "provider_label": "openai",
            "default_model": "gpt-4o-mini",
        },
    },
    "openrouter": {
        "module": ".openai_compat",
        "class": "OpenAICompatProvider",
        "kwargs": {
            "base_url": "https://openrouter.ai/api/v1",
            "provider_label": "openrouter",
            "default_model": "google/gemini-2.5-flash",
        },
    },
    "anthropic": {
        "module": ".anthropic",
        "class": "AnthropicProvider",
    },
    "deepseek": {
        "module": ".openai_compat",
        "class": "OpenAICompatProvider",
        "kwargs": {
            "base_url": "https://api.deepseek.com/v1",
            "provider_label": "deepseek",
            "default_model": "deepseek-chat",
        },
    },
    "together": {
        "module": ".openai_compat",
        "class": "OpenAICompatProvider",
        "kwargs": {
            "base_url": "https://api.together.xyz/v1",
            "provider_label": "together",
            "default_model": "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
        },
    },
    "groq": {
        "module": ".openai_compat",
        "class": "OpenAICompatProvider",
        "kwargs": {
            "base_url": "https://api.groq.com/openai/v1",
            "provider_label": "groq",
            "default_model": "llama-3.3-70b-versatile",
        },
    },
}


def available_providers(
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> list[str]:
    return sorted(set(_BUILTIN_REGISTRY) | set(custom_providers or {}))


def get_provider(
    provider_name: str,
    custom_providers: dict[str, CustomProviderConfig] | None = None,
    timeout: float | None = None,
) -> LLMProvider:
    """Create a provider instance by name.

    Checks custom providers first, then built-in registry.

    Args:
        provider_name: Provider name (e.g., "openrouter", "openai", "anthropic")
        custom_providers: Optional custom provider configs from MingziConfig
        timeout: Per-call timeout in seconds passed to the SDK client

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If provider is unknown
        ProviderError: If the provider's API key is not set
    """
    api_key = get_api_key_for_provider(provider_name, custom_providers)

    # Check custom providers first
    if custom_providers and provider_name in custom_providers:
        from .openai_compat import OpenAICompatProvider

        custom = custom_providers[provider_name]
        return OpenAICompatProvider(
            api_key=api_key,
            base_url=custom.base_url,
            provider_label=provider_name,
            timeout=timeout,
        )

    if provider_name not in _BUILTIN_REGISTRY:
        raise ValueError(
            f"Unknown LLM provider: {provider_name!r}. "
            f"Available: {', '.join(available_providers(custom_providers))}"
        )

    entry = _BUILTIN_REGISTRY[provider_name]
    module = importlib.import_module(entry["module"], package=__package__)
    cls = getattr(module, entry["class"])

    kwargs = dict(entry.get("kwargs", {}))
    kwargs["api_key"] = api_key
    kwargs["timeout"] = timeout

    return cls(**kwargs)


__all__ = [
    "LLMProvider",
    "SamplingParams",
    "TokenUsage",
    "ProviderError",
    "available_providers",
    "get_provider",
    "parse_model_string",
]
