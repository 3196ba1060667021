"""OpenAI-compatible LLM Provider.

Supports any provider that implements the OpenAI Chat Completions API:
- OpenAI itself, OpenRouter, DeepSeek, Together, Groq, custom endpoints

Uses `openai.OpenAI(base_url=...)` with the Chat Completions API. The SDK's
own retry loop is disabled: one `complete()` is one request, and failures are
handled by the naming fallback one level up.
"""

import logging
import time

import openai
from openai import OpenAI

from ...errors import ProviderError
from .base import LLMProvider, SamplingParams, TokenUsage
from .logging import build_call_record, log_provider_call

logger = logging.getLogger(__name__)


class OpenAICompatProvider(LLMProvider):
    """OpenAI-compatible provider using Chat Completions."""

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = "",
        provider_label: str = "openai",
        default_model: str = "gpt-4o-mini",
        timeout: float | None = None,
    ) -> None:
        if not api_key:
            raise ProviderError(
                f"API key not found for {provider_label}. "
                f"Set {provider_label.upper()}_API_KEY as an environment variable."
            )
        super().__init__(api_key, timeout=timeout)
        self._base_url = base_url
        self.provider_name = provider_label
        self._default_model = default_model
        self._client: OpenAI | None = None

    @property
    def default_model(self) -> str:
        return self._default_model

    def _get_client(self) -> OpenAI:
        if self._client is None:
            kwargs: dict = {"api_key": self._api_key, "max_retries": 0}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            if self._timeout is not None:
                kwargs["timeout"] = self._timeout
            self._client = OpenAI(**kwargs)
        return self._client

    @staticmethod
    def _build_params(
        model: str,
        system_prompt: str,
        prompt: str,
        sampling: SamplingParams,
    ) -> dict:
        """Build Chat Completions API request parameters."""
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": sampling.temperature,
            "max_tokens": sampling.max_tokens,
            "top_p": sampling.top_p,
        }

    @staticmethod
    def _extract_text(response) -> str | None:
        """Extract text from Chat Completions response."""
        if response.choices and len(response.choices) > 0:
            content = response.choices[0].message.content
            if content:
                return content
        return None

    @staticmethod
    def _extract_usage(response) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if usage is None:
            return TokenUsage()
        return TokenUsage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

    def complete(
        self,
        system_prompt: str,
        prompt: str,
        sampling: SamplingParams,
        model: str | None = None,
        log: bool = False,
    ) -> str:
        model = model or self.default_model
        params = self._build_params(model, system_prompt, prompt, sampling)
        lbl = self.provider_name
        logger.info(f"[{lbl}] complete model={model} temperature={sampling.temperature}")

        api_start = time.time()
        try:
            response = self._get_client().chat.completions.create(**params)
        except openai.OpenAIError as e:
            if log:
                log_provider_call(
                    build_call_record(
                        lbl, params, system_prompt, prompt,
                        elapsed=time.time() - api_start,
                        error=f"{type(e).__name__}: {e}",
                    )
                )
            raise ProviderError(f"[{lbl}] {type(e).__name__}: {e}") from e
        api_elapsed = time.time() - api_start
        logger.info(f"[{lbl}] API response in {api_elapsed:.2f}s")

        self.last_usage = self._extract_usage(response)
        text = self._extract_text(response)
        if log:
            log_provider_call(
                build_call_record(
                    lbl, params, system_prompt, prompt,
                    reply=text,
                    usage=self.last_usage,
                    elapsed=api_elapsed,
                    response_id=getattr(response, "id", None),
                    error=None if text else "empty response",
                )
            )

        if not text:
            raise ProviderError(f"[{lbl}] No response content from {model}")
        return text
