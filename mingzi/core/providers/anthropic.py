"""Anthropic (Claude) LLM Provider implementation.

Plain Messages API call: the system instruction goes in `system`, the naming
prompt is the single user turn, and the text blocks of the reply are joined.
"""

import logging
import time

import anthropic

from ...errors import ProviderError
from .base import LLMProvider, SamplingParams, TokenUsage
from .logging import build_call_record, log_provider_call

logger = logging.getLogger(__name__)


def _extract_text(response) -> str:
    """Join all text blocks of a Claude response."""
    parts = []
    for block in response.content:
        if block.type == "text" and block.text:
            parts.append(block.text)
    return "".join(parts)


def _extract_usage(response) -> TokenUsage:
    """Extract token usage from an Anthropic API response."""
    if not hasattr(response, "usage") or response.usage is None:
        return TokenUsage()
    return TokenUsage(
        input_tokens=getattr(response.usage, "input_tokens", 0) or 0,
        output_tokens=getattr(response.usage, "output_tokens", 0) or 0,
    )


class AnthropicProvider(LLMProvider):
    """Anthropic (Claude) LLM provider."""

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = "",
        timeout: float | None = None,
    ) -> None:
        if not api_key:
            raise ProviderError(
                "Anthropic API key not found. Set it via:\n"
                "  export ANTHROPIC_API_KEY=sk-ant-...\n"
                "Get your key from: https://console.anthropic.com/settings/keys"
            )
        super().__init__(api_key, timeout=timeout)
        self._base_url = base_url
        self._client: anthropic.Anthropic | None = None

    @property
    def default_model(self) -> str:
        return "claude-haiku-4-5"

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            kwargs: dict = {"api_key": self._api_key, "max_retries": 0}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            if self._timeout is not None:
                kwargs["timeout"] = self._timeout
            self._client = anthropic.Anthropic(**kwargs)
        return self._client

    def complete(
        self,
        system_prompt: str,
        prompt: str,
        sampling: SamplingParams,
        model: str | None = None,
        log: bool = False,
    ) -> str:
        model = model or self.default_model
        params = {
            "model": model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            # temperature only: Claude rejects requests that also set top_p
            "temperature": sampling.temperature,
            "max_tokens": sampling.max_tokens,
        }
        logger.info(f"[Claude] complete model={model} temperature={sampling.temperature}")

        api_start = time.time()
        try:
            response = self._get_client().messages.create(**params)
        except anthropic.AnthropicError as e:
            if log:
                log_provider_call(
                    build_call_record(
                        self.provider_name, params, system_prompt, prompt,
                        elapsed=time.time() - api_start,
                        error=f"{type(e).__name__}: {e}",
                    )
                )
            raise ProviderError(f"[Claude] {type(e).__name__}: {e}") from e
        api_elapsed = time.time() - api_start
        logger.info(f"[Claude] API response in {api_elapsed:.2f}s")

        self.last_usage = _extract_usage(response)
        text = _extract_text(response)
        if log:
            log_provider_call(
                build_call_record(
                    self.provider_name, params, system_prompt, prompt,
                    reply=text,
                    usage=self.last_usage,
                    elapsed=api_elapsed,
                    response_id=getattr(response, "id", None),
                    error=None if text else "empty response",
                )
            )

        if not text:
            raise ProviderError(f"[Claude] No response content from {model}")
        return text
