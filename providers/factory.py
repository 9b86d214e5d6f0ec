"""Factory for creating text-generation providers."""

from typing import Dict, Optional, Type

from config import settings

from .anthropic_provider import AnthropicProvider
from .base import LLMProvider
from .litellm_provider import LiteLLMProvider
from .openai_provider import DeepseekProvider, OpenAIProvider


# Registry of available providers
PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
    "deepseek": DeepseekProvider,
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
    "litellm": LiteLLMProvider,
}

ALIASES = {"gpt", "claude"}

# Model-name prefix -> provider, for auto-detection
MODEL_PROVIDERS: Dict[str, str] = {
    "gpt-": "openai",
    "o1": "openai",
    "o3": "openai",
    "claude": "anthropic",
    "deepseek": "deepseek",
    "anthropic/": "litellm",
    "deepseek/": "litellm",
    "gemini/": "litellm",
}


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMProvider:
    """Get a provider instance.

    Args:
        provider_name: Explicit provider name (openai, deepseek, anthropic, litellm)
        model: Model name; used to infer the provider when none is named

    Returns:
        LLMProvider instance

    Examples:
        get_provider("anthropic")
        get_provider(model="gpt-4o-mini")      # OpenAI
        get_provider(model="gemini/gemini-2.0-flash")  # LiteLLM
        get_provider()                         # settings.default_provider
    """
    if provider_name:
        provider_key = provider_name.lower()
        if provider_key not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {list(PROVIDERS.keys())}"
            )
        return _instantiate(provider_key, model)

    if model:
        model_lower = model.lower()
        # Longest prefix first so "deepseek/" beats "deepseek"
        for prefix in sorted(MODEL_PROVIDERS, key=len, reverse=True):
            if model_lower.startswith(prefix):
                return _instantiate(MODEL_PROVIDERS[prefix], model)

    return _instantiate(settings.default_provider.lower(), model)


def _instantiate(provider_key: str, model: Optional[str]) -> LLMProvider:
    provider_class = PROVIDERS[provider_key]
    if provider_class is LiteLLMProvider:
        return LiteLLMProvider(default_model=model or settings.default_model)
    return provider_class()


def list_providers() -> Dict[str, bool]:
    """List all providers and their availability.

    Returns:
        Dict mapping provider name to availability status
    """
    result = {}
    for name in PROVIDERS:
        if name in ALIASES:
            continue
        try:
            result[name] = _instantiate(name, None).is_available()
        except Exception:
            result[name] = False
    return result
