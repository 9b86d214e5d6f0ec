"""Configuration settings for IdeaForge."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env into os.environ so provider SDKs (e.g. OPENAI_API_KEY) pick it up
load_dotenv()


class Settings(BaseSettings):
    """Global settings for IdeaForge.

    Settings can be overridden via environment variables with IDEAFORGE_ prefix.
    Example: IDEAFORGE_SUGGESTION_MAX_ATTEMPTS=5
    """

    # Model config
    default_provider: str = Field(
        default="openai",
        description="Provider used when neither a provider nor a model hint is given",
    )
    default_model: str = Field(
        default="gpt-4o",
        description="Default model for agent calls"
    )
    max_tokens_per_agent_call: int = Field(
        default=4096,
        description="Maximum tokens per individual agent call"
    )
    api_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Fallback timeout for a single text-generation call"
    )

    # Suggestions
    suggestion_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Generation attempts before the last validation error is raised"
    )
    weak_pillar_threshold: int = Field(
        default=75,
        ge=0,
        le=100,
        description="Pillars scoring below this are treated as weak"
    )

    # Refinement
    auto_improve_target_score: int = Field(
        default=90,
        ge=0,
        le=100,
        description="Weakest-pillar score at which auto-improve stops"
    )
    auto_improve_max_loops: int = Field(
        default=4,
        ge=0,
        description="Maximum refinement iterations per auto-improve run"
    )

    # Execution
    section_max_workers: int = Field(
        default=7,
        ge=1,
        description="Parallel section evaluations within one run"
    )
    background_max_workers: int = Field(
        default=4,
        ge=1,
        description="Validation runs executing in the background at once"
    )

    # Storage
    store_backend: str = Field(
        default="memory",
        description="Persistent store backend: memory or json"
    )
    store_dir: str = Field(
        default="./workspace/store",
        description="Directory for the json store backend"
    )

    model_config = {
        "env_prefix": "IDEAFORGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore extra env vars (e.g. OPENAI_API_KEY) not in schema
    }

    def get_store_path(self) -> Path:
        """Get store directory as Path object."""
        return Path(self.store_dir)


@dataclass(frozen=True)
class GenerationConfig:
    """Fully resolved parameters for one text-generation call."""
    role: str
    model: str
    temperature: float
    timeout_seconds: float
    max_tokens: int


# Agent role -> sampling defaults
ROLE_GENERATION_DEFAULTS: Dict[str, Dict[str, float]] = {
    "section": {"temperature": 0.7, "timeout_seconds": 30.0},
    "suggestions": {"temperature": 0.2, "timeout_seconds": 45.0},
    "refinement": {"temperature": 0.35, "timeout_seconds": 60.0},
    "overview": {"temperature": 0.55, "timeout_seconds": 60.0},
}


def resolve_generation_config(
    role: str,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
    base: Optional[Settings] = None,
) -> GenerationConfig:
    """Resolve the generation parameters for an agent role.

    Explicit arguments win over the role defaults, which win over settings.

    Args:
        role: Agent role (section, suggestions, refinement, overview)
        model: Model override
        temperature: Temperature override
        timeout_seconds: Timeout override
        base: Settings instance (defaults to the module singleton)

    Returns:
        GenerationConfig with every field populated
    """
    active = base or settings
    defaults = ROLE_GENERATION_DEFAULTS.get(role, {})

    return GenerationConfig(
        role=role,
        model=model or active.default_model,
        temperature=temperature if temperature is not None else defaults.get("temperature", 0.5),
        timeout_seconds=(
            timeout_seconds
            if timeout_seconds is not None
            else defaults.get("timeout_seconds", active.api_timeout_seconds)
        ),
        max_tokens=active.max_tokens_per_agent_call,
    )


# Create singleton instance
settings = Settings()
