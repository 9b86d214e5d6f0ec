"""Base interface for the text-generation collaborator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMResponse:
    """Raw completion text plus usage, as returned by any provider."""
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


class LLMProvider(ABC):
    """A text-generation service the agents call through.

    Implementations return free-form text; turning that text into JSON is
    the job of providers.json_coercion, not the provider.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (openai, deepseek, anthropic, litellm)."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the caller passes none."""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            system_prompt: System/instruction prompt
            user_message: User prompt
            model: Model to use (defaults to provider's default)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature, provider default when None
            timeout: Seconds before the call is abandoned; a timeout raises

        Returns:
            LLMResponse with content and token counts
        """

    def is_available(self) -> bool:
        """Whether credentials for this provider are configured."""
        return True
