"""Error taxonomy for the validation and refinement core."""

from typing import List, Optional


class IdeaForgeError(Exception):
    """Base class for every error raised by the core."""


class AIResponseError(IdeaForgeError):
    """The text-generation call failed, timed out, or returned text that is not JSON."""


class SchemaValidationError(IdeaForgeError):
    """Coerced JSON failed structural or semantic validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class MissingInputError(IdeaForgeError):
    """Required input (idea title/summary, pillar scores, target pillar) is absent."""


class NotFoundError(IdeaForgeError):
    """A report, project or overview does not exist or belongs to another owner."""
