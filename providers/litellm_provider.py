"""LiteLLM-backed provider: one implementation routed to any LiteLLM model string."""

from typing import Any, Dict, Optional

from .base import LLMProvider, LLMResponse


# Short names -> LiteLLM model strings (OpenAI models need no prefix)
MODEL_ALIASES: Dict[str, str] = {
    "gpt-4o": "gpt-4o",
    "gpt-4o-mini": "gpt-4o-mini",
    "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
    "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    "deepseek-chat": "deepseek/deepseek-chat",
}


def to_litellm_model(model: Optional[str], fallback: str) -> str:
    """Resolve a short model name to a LiteLLM model string."""
    if not model:
        return fallback
    return MODEL_ALIASES.get(model.lower(), model)


class LiteLLMProvider(LLMProvider):
    """Delegates every call to litellm.completion()."""

    def __init__(self, default_model: str = "gpt-4o-mini", metadata: Optional[dict] = None):
        """Initialize with the LiteLLM model string to use by default.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
            metadata: Optional dict passed through to litellm (e.g. agent role).
        """
        self._default_model = default_model
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        import litellm

        resolved_model = to_litellm_model(model, self._default_model)
        kwargs: Dict[str, Any] = {
            "model": resolved_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
            "metadata": {**self._metadata},
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = litellm.completion(**kwargs)

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        hidden = getattr(response, "_hidden_params", None) or {}

        return LLMResponse(
            content=content,
            model=getattr(response, "model", None) or resolved_model,
            provider=self.name,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            cost=float(hidden.get("response_cost", 0) or 0),
        )

    def is_available(self) -> bool:
        """LiteLLM reads API keys from env; available whenever a model is set."""
        return bool(self._default_model)
