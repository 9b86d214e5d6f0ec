"""Orchestration of validation runs and post-validation workflows."""

from .validation_run_coordinator import ValidationRunCoordinator, merge_section_result, describe_failures
from .ideation_manager import IdeationManager

__all__ = [
    "ValidationRunCoordinator",
    "merge_section_result",
    "describe_failures",
    "IdeationManager",
]
