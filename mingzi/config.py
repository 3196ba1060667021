"""Configuration management for Mingzi.

Config sections:
- generation: "provider/model" string plus per-call limits for the naming provider
- quota: free-usage limits and batch sizes
- payments: checkout endpoint and webhook secret lookup
- defaults: storage location

Model strings use "provider/model" format (e.g., "openrouter/google/gemini-2.5-flash").

Config resolution order (highest priority first):
1. Programmatic (MingziConfig constructed in code)
2. Environment variables (GENERATION_MODEL, DB_PATH, etc.)
3. Config file (~/.config/mingzi/config.json, managed by `mingzi config`)
4. Hardcoded defaults

API keys are ALWAYS read from env vars, never stored in the config file.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "mingzi"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Model string parsing
# =============================================================================


def parse_model_string(model_string: str) -> tuple[str, str]:
    """Parse a "provider/model" string into (provider, model) tuple.

    Examples:
        "openai/gpt-4o-mini" → ("openai", "gpt-4o-mini")
        "openrouter/google/gemini-2.5-flash" → ("openrouter", "google/gemini-2.5-flash")

    Raises:
        ValueError: If the string doesn't contain a '/' separator.
    """
    if "/" not in model_string:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Expected format: 'provider/model' (e.g., 'openai/gpt-4o-mini')"
        )
    provider, _, model = model_string.partition("/")
    if not provider or not model:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Both provider and model must be non-empty."
        )
    return provider, model


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class GenerationConfig:
    """Naming provider configuration.

    - model: "provider/model" string routed through the provider registry
    - timeout_seconds: per-call budget; expiry counts as a provider failure
    - max_output_tokens: completion cap shared by both plan tiers
    - log_requests: write sanitized request/response JSON under ./logs
    """

    model: str = "openrouter/google/gemini-2.5-flash"
    timeout_seconds: float = 30.0
    max_output_tokens: int = 1200
    log_requests: bool = False


@dataclass
class QuotaConfig:
    """Free-usage limits and batch sizes."""

    anonymous_daily_generations: int = 1
    authenticated_count: int = 6
    anonymous_count: int = 3


@dataclass
class PaymentsConfig:
    """Payment provider settings. Secrets are resolved from the named env vars."""

    api_base_url: str = "https://api.creem.io"
    api_key_env: str = "CREEM_API_KEY"
    webhook_secret_env: str = "CREEM_WEBHOOK_SECRET"
    success_url: str = ""


@dataclass
class CustomProviderConfig:
    """Configuration for a custom OpenAI-compatible provider endpoint."""

    base_url: str = ""
    api_key_env: str = ""


@dataclass
class DefaultsConfig:
    """Non-provider default settings."""

    db_path: str = "./storage/mingzi.db"


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class MingziConfig:
    """Top-level mingzi configuration.

    Construct programmatically for package use, or load from config file for CLI use.

    Examples:
        # Package use: no files needed
        config = MingziConfig(
            generation=GenerationConfig(model="openai/gpt-4o-mini"),
        )

        # CLI / server use: loads from ~/.config/mingzi/config.json
        config = MingziConfig.load()
    """

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    payments: PaymentsConfig = field(default_factory=PaymentsConfig)
    providers: dict[str, CustomProviderConfig] = field(default_factory=dict)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls) -> "MingziConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        if val := os.environ.get("GENERATION_MODEL"):
            config.generation.model = val
        if val := os.environ.get("GENERATION_TIMEOUT"):
            try:
                config.generation.timeout_seconds = float(val)
            except ValueError:
                logger.warning("Invalid GENERATION_TIMEOUT=%r, ignoring", val)
        if val := os.environ.get("GENERATION_MAX_OUTPUT_TOKENS"):
            try:
                config.generation.max_output_tokens = int(val)
            except ValueError:
                logger.warning("Invalid GENERATION_MAX_OUTPUT_TOKENS=%r, ignoring", val)
        if val := os.environ.get("QUOTA_ANONYMOUS_DAILY"):
            try:
                config.quota.anonymous_daily_generations = int(val)
            except ValueError:
                logger.warning("Invalid QUOTA_ANONYMOUS_DAILY=%r, ignoring", val)
        if val := os.environ.get("DB_PATH"):
            config.defaults.db_path = val

        return config

    def save(self) -> None:
        """Save config to ~/.config/mingzi/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display and persistence."""
        result: dict[str, Any] = {
            "generation": asdict(self.generation),
            "quota": asdict(self.quota),
            "payments": asdict(self.payments),
            "defaults": asdict(self.defaults),
        }
        if self.providers:
            result["providers"] = {
                name: asdict(cfg) for name, cfg in self.providers.items()
            }
        return result

    @property
    def db_path_resolved(self) -> Path:
        """Resolve database path."""
        path = Path(self.defaults.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


# =============================================================================
# Config dict application
# =============================================================================

_INT_FIELDS = {
    "max_output_tokens",
    "anonymous_daily_generations",
    "authenticated_count",
    "anonymous_count",
}
_FLOAT_FIELDS = {"timeout_seconds"}
_BOOL_FIELDS = {"log_requests"}


def coerce_field(field_name: str, value: Any) -> Any:
    """Coerce a raw (file or CLI) value to the type a config field expects.

    Raises:
        ValueError: If the value cannot be converted.
    """
    if field_name in _INT_FIELDS:
        return int(value)
    if field_name in _FLOAT_FIELDS:
        return float(value)
    if field_name in _BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Invalid boolean value: {value!r}")
    return value


def _apply_section(target: Any, values: dict) -> None:
    for k, v in values.items():
        if not hasattr(target, k):
            continue
        try:
            setattr(target, k, coerce_field(k, v))
        except ValueError:
            logger.warning("Invalid config value %s=%r, ignoring", k, v)


def _apply_dict(config: MingziConfig, data: dict) -> None:
    """Apply a dict of values onto a MingziConfig."""
    for section in ("generation", "quota", "payments", "defaults"):
        if section in data and isinstance(data[section], dict):
            _apply_section(getattr(config, section), data[section])
    if "providers" in data and isinstance(data["providers"], dict):
        for name, provider_data in data["providers"].items():
            if isinstance(provider_data, dict):
                config.providers[name] = CustomProviderConfig(
                    base_url=provider_data.get("base_url", ""),
                    api_key_env=provider_data.get("api_key_env", ""),
                )


# =============================================================================
# API key resolution
# =============================================================================

_dotenv_loaded = False


def _ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


def get_api_key_for_provider(
    provider_name: str,
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> str:
    """Get API key for a provider.

    Resolution order:
    1. Custom provider api_key_env override
    2. Convention: {PROVIDER_UPPER}_API_KEY

    "openrouter" also accepts OPENAI_API_KEY, since OpenRouter keys are commonly
    exported under the OpenAI name for SDK compatibility.

    Returns empty string if not found.
    """
    _ensure_dotenv()

    if custom_providers and provider_name in custom_providers:
        custom = custom_providers[provider_name]
        if custom.api_key_env:
            return os.environ.get(custom.api_key_env, "")

    key = os.environ.get(f"{provider_name.upper()}_API_KEY", "")
    if not key and provider_name == "openrouter":
        key = os.environ.get("OPENAI_API_KEY", "")
    return key


def get_secret(env_var: str) -> str:
    """Read a secret (payment key, webhook secret) from the environment."""
    _ensure_dotenv()
    return os.environ.get(env_var, "")


# =============================================================================
# Global config singleton (entry points only)
# =============================================================================

_config: MingziConfig | None = None


def get_config() -> MingziConfig:
    """Get the global MingziConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Only the CLI and HTTP entry points read this; core objects take their
    config as a constructor argument.
    """
    global _config
    if _config is None:
        _config = MingziConfig.load()
    return _config


def configure(config: MingziConfig) -> None:
    """Set the global MingziConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
