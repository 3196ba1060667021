"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SamplingParams:
    """Sampling settings for one completion call."""

    temperature: float
    max_tokens: int
    top_p: float


@dataclass
class TokenUsage:
    """Token usage from a single LLM API call."""

    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: "TokenUsage | None") -> None:
        if other is not None:
            self.input_tokens += other.input_tokens
            self.output_tokens += other.output_tokens


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    All providers must implement `complete` with the same signature
    to ensure drop-in compatibility.

    Args:
        api_key: API key or access token for the provider.
        timeout: Per-call timeout in seconds.
    """

    # Provider name for logging (override in subclasses)
    provider_name: str = "unknown"

    def __init__(self, api_key: str, timeout: float | None = None) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self.last_usage = TokenUsage()

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the caller passes none."""
        ...

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        prompt: str,
        sampling: SamplingParams,
        model: str | None = None,
        log: bool = False,
    ) -> str:
        """Single chat completion returning the raw response text.

        Makes exactly one outbound request. Raises ProviderError when the
        request fails, times out, or returns no text.
        """
        ...
