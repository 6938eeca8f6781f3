"""Stage descriptors and prompt templates for the diagram pipeline."""

from .builder import PromptBuilder, StageDescriptor, StagePrompt
from .constants import STAGE_DIAGRAM, STAGE_EXPLANATION, STAGE_MAPPING, STAGE_ORDER

__all__ = [
    "PromptBuilder",
    "STAGE_DIAGRAM",
    "STAGE_EXPLANATION",
    "STAGE_MAPPING",
    "STAGE_ORDER",
    "StageDescriptor",
    "StagePrompt",
]
