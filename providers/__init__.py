"""Text-generation provider abstraction for multi-model support."""

from .base import LLMProvider, LLMResponse
from .factory import get_provider, list_providers
from .json_coercion import ParseResult, coerce_json

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "list_providers",
    "ParseResult",
    "coerce_json",
]
