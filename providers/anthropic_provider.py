"""Anthropic (Claude) provider."""

import os
from typing import Any, Dict, Optional

from .base import LLMProvider, LLMResponse


class AnthropicProvider(LLMProvider):
    """Messages-API provider for Claude models."""

    MODELS = {
        "claude-sonnet": "claude-sonnet-4-20250514",
        "claude-opus": "claude-opus-4-20250514",
        "claude-haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the provider.

        Args:
            api_key: Anthropic API key. Uses ANTHROPIC_API_KEY env var if not provided.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    def _get_client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key)
        return self._client

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        client = self._get_client()
        resolved_model = self.MODELS.get(model, model) if model else self.default_model

        request: Dict[str, Any] = {
            "model": resolved_model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
        }
        if temperature is not None:
            request["temperature"] = temperature
        if timeout is not None:
            request["timeout"] = timeout

        response = client.messages.create(**request)
        text = "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")

        return LLMResponse(
            content=text,
            model=resolved_model,
            provider=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
