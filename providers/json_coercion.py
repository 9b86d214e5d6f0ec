"""Coerce free-form model output into JSON at the provider boundary."""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional


_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class ParseResult:
    """Tagged parse outcome: either ok with data, or not ok with an error message."""
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any) -> "ParseResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(ok=False, error=error)


def coerce_json(text: Optional[str]) -> ParseResult:
    """Parse model output as JSON.

    Tries the whole text first, then the first fenced code block
    (```json or bare ```). Anything else is a failure.

    Args:
        text: Raw completion text

    Returns:
        ParseResult with the decoded value, or the reason it could not be decoded
    """
    if text is None or not text.strip():
        return ParseResult.failure("Empty response")

    stripped = text.strip()
    try:
        return ParseResult.success(json.loads(stripped))
    except json.JSONDecodeError as direct_error:
        match = _FENCE_PATTERN.search(stripped)
        if match is None:
            return ParseResult.failure(f"Response is not JSON: {direct_error.msg}")

    try:
        return ParseResult.success(json.loads(match.group(1).strip()))
    except json.JSONDecodeError as fenced_error:
        return ParseResult.failure(f"Fenced block is not JSON: {fenced_error.msg}")
