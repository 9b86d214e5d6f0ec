"""Base agent class that the model-backed agents inherit from.

Every agent:
- Builds a system prompt that embeds its output JSON schema
- Calls the text-generation provider with role-resolved generation settings
- Coerces the reply to JSON and validates it against its Pydantic contract
- Retries with the previous error appended when asked to
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config import GenerationConfig, resolve_generation_config
from contracts import AIResponseError, IdeaForgeError, SchemaValidationError
from providers import LLMProvider, LLMResponse, coerce_json, get_provider

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class TokenUsage(BaseModel):
    """Token usage accumulated across calls."""
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    def add(self, response: LLMResponse) -> None:
        self.input_tokens += response.input_tokens
        self.output_tokens += response.output_tokens
        self.cost += response.cost


class AgentResult(BaseModel):
    """Result from an agent run, including output and metadata."""
    output: Any
    model: str
    provider: str
    raw_response: Optional[str] = None
    attempts: int = 1


def schema_errors(error: ValidationError) -> List[str]:
    """Flatten a pydantic ValidationError into readable messages."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "response"
        messages.append(f"{location}: {item.get('msg', 'invalid value')}")
    return messages


class BaseAgent(ABC):
    """Base class for every model-backed agent.

    Responsibilities:
    - Resolves generation settings once, at construction
    - Calls the provider and turns any provider failure into AIResponseError
    - Turns unparseable text into AIResponseError and schema failures into
      SchemaValidationError
    - Gives subclasses a validate_output() hook for semantic checks
    """

    def __init__(
        self,
        role: str,
        system_prompt: str,
        output_schema: Type[T],
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize the agent.

        Args:
            role: Agent role, selects the generation defaults (section, suggestions, ...)
            system_prompt: The agent's system prompt defining its behavior
            output_schema: Pydantic model class the reply must validate against
            llm_provider: Provider instance; built from provider/model when omitted
            model: Model override
            provider: Explicit provider name (openai, deepseek, anthropic, litellm)
            temperature: Temperature override for this agent
            timeout_seconds: Per-call timeout override for this agent
        """
        self.role = role
        self.system_prompt = system_prompt
        self.output_schema = output_schema

        self.llm_provider: LLMProvider = llm_provider or get_provider(provider_name=provider, model=model)
        self.generation: GenerationConfig = resolve_generation_config(
            role,
            model=model or self.llm_provider.default_model,
            temperature=temperature,
            timeout_seconds=timeout_seconds,
        )
        self.total_usage = TokenUsage()

    def _build_full_system_prompt(self) -> str:
        """Build the complete system prompt including the output schema."""
        parts = [self.system_prompt]
        parts.append("\n\n# OUTPUT FORMAT\n")
        parts.append("You MUST respond with valid JSON matching this schema:\n\n")
        parts.append(f"```json\n{json.dumps(self.output_schema.model_json_schema(), indent=2)}\n```")
        return "".join(parts)

    def build_user_message(self, input_data: Any) -> str:
        """Render the input for the model. Subclasses shape their own prompts."""
        if isinstance(input_data, BaseModel):
            return f"# INPUT\n\n{input_data.model_dump_json(indent=2)}"
        return f"# INPUT\n\n{input_data}"

    def _complete(self, user_message: str) -> LLMResponse:
        """Call the provider. Timeouts and SDK errors surface as AIResponseError."""
        try:
            response = self.llm_provider.complete(
                system_prompt=self._build_full_system_prompt(),
                user_message=user_message,
                model=self.generation.model,
                max_tokens=self.generation.max_tokens,
                temperature=self.generation.temperature,
                timeout=self.generation.timeout_seconds,
            )
        except Exception as e:
            raise AIResponseError(f"{self.role} generation failed: {e}") from e
        self.total_usage.add(response)
        return response

    def _parse_and_validate(self, response_text: str) -> T:
        """Coerce the reply to JSON and validate it against the output schema.

        Raises:
            AIResponseError: If the reply cannot be coerced to JSON
            SchemaValidationError: If the JSON does not match the schema
        """
        parsed = coerce_json(response_text)
        if not parsed.ok:
            raise AIResponseError(f"{self.role} response could not be parsed: {parsed.error}")
        try:
            return self.output_schema.model_validate(parsed.data)
        except ValidationError as e:
            errors = schema_errors(e)
            raise SchemaValidationError(
                f"{self.role} response failed schema validation: {'; '.join(errors)}",
                errors,
            ) from e

    def validate_output(self, output: T, input_data: Any) -> T:
        """Semantic checks beyond the schema. Raise SchemaValidationError to reject."""
        return output

    def run(self, input_data: Any, max_retries: int = 0) -> AgentResult:
        """Execute the agent.

        Args:
            input_data: Input handed to build_user_message()
            max_retries: Extra attempts after a failed one; each retry is a
                fresh call that carries the previous error

        Returns:
            AgentResult with validated output and metadata

        Raises:
            AIResponseError: If the final attempt could not be called or parsed
            SchemaValidationError: If the final attempt failed validation
        """
        base_message = self.build_user_message(input_data)
        user_message = base_message
        last_error: Optional[IdeaForgeError] = None

        for attempt in range(max_retries + 1):
            if attempt > 0 and last_error is not None:
                user_message = (
                    f"{base_message}\n\n"
                    f"# PREVIOUS ERROR\n\n"
                    f"Your previous response was rejected. "
                    f"Error: {last_error}\n\n"
                    f"Please fix the issues and provide a valid JSON response."
                )
            try:
                response = self._complete(user_message)
                output = self._parse_and_validate(response.content)
                output = self.validate_output(output, input_data)
                return AgentResult(
                    output=output,
                    model=response.model,
                    provider=response.provider,
                    raw_response=response.content,
                    attempts=attempt + 1,
                )
            except (AIResponseError, SchemaValidationError) as e:
                last_error = e
                if attempt < max_retries:
                    logger.warning("%s attempt %d rejected: %s", self.role, attempt + 1, e)

        raise last_error

    @abstractmethod
    def get_task_description(self) -> str:
        """Return a description of what this agent does.

        Used for logging and debugging.
        """
