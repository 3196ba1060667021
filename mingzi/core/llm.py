"""Generation client for Mingzi - Facade Layer.

Wraps a single LLM provider with the naming-specific call shape:
- system instruction chosen by plan tier
- sampling chosen by plan tier (Premium samples hotter for more creative names)
- one outbound request per call, no retry (fallback happens in the orchestrator)

Model strings use "provider/model" format. The provider is extracted to route
to the correct backend; the model name is passed through.
"""

import logging

from .models import PlanType
from .providers import LLMProvider, SamplingParams, TokenUsage, get_provider
from ..config import GenerationConfig, MingziConfig, parse_model_string

logger = logging.getLogger(__name__)


__all__ = [
    "GenerationClient",
    "create_generation_client",
    "sampling_for_plan",
    "system_instruction",
]


# Plan tier → (temperature, top_p)
_TIER_SAMPLING: dict[PlanType, tuple[float, float]] = {
    PlanType.STANDARD: (0.8, 0.9),
    PlanType.PREMIUM: (0.9, 0.95),
}


def sampling_for_plan(plan: PlanType, max_tokens: int = 1200) -> SamplingParams:
    """Sampling parameters for a plan tier."""
    temperature, top_p = _TIER_SAMPLING[plan]
    return SamplingParams(temperature=temperature, max_tokens=max_tokens, top_p=top_p)


def system_instruction(plan: PlanType) -> str:
    """System message framing the provider as a naming expert."""
    flavour = (
        "premium personalized" if plan is PlanType.PREMIUM else "standard personalized"
    )
    return (
        f"You are a Chinese naming expert specializing in {flavour} name generation. "
        "IMPORTANT: Respond with ONLY valid JSON. No explanations, no markdown, "
        "no extra text. Start with { and end with }. Generate creative and unique "
        "Chinese names based on personal information."
    )


class GenerationClient:
    """Adapter between the batch orchestrator and an LLM provider.

    Args:
        provider: Provider instance that performs the HTTP call.
        config: Generation settings (max output tokens, request logging).
        model: Model name passed to the provider; None uses its default.
    """

    def __init__(
        self,
        provider: LLMProvider,
        config: GenerationConfig | None = None,
        model: str | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or GenerationConfig()
        self.model = model

    @property
    def last_usage(self) -> TokenUsage | None:
        """Token usage of the most recent successful call."""
        return self.provider.last_usage

    @property
    def model_label(self) -> str:
        return f"{self.provider.provider_name}/{self.model or self.provider.default_model}"

    def sampling_for(self, plan: PlanType) -> SamplingParams:
        return sampling_for_plan(plan, max_tokens=self.config.max_output_tokens)

    def generate(self, prompt: str, plan: PlanType) -> str:
        """Send one naming prompt and return the raw response text.

        Raises:
            ProviderError: The call failed, timed out, or returned no content.
        """
        return self.provider.complete(
            system_prompt=system_instruction(plan),
            prompt=prompt,
            sampling=self.sampling_for(plan),
            model=self.model,
            log=self.config.log_requests,
        )


def create_generation_client(config: MingziConfig) -> GenerationClient:
    """Build a GenerationClient from explicit configuration.

    Raises:
        ValueError: Malformed model string or unknown provider.
        ProviderError: Provider API key missing.
    """
    provider_name, model_name = parse_model_string(config.generation.model)
    provider = get_provider(
        provider_name,
        config.providers,
        timeout=config.generation.timeout_seconds,
    )
    logger.info("Generation client ready: %s/%s", provider_name, model_name)
    return GenerationClient(provider, config.generation, model=model_name)
