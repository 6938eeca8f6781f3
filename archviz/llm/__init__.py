"""Language-model adapters used by pipeline stages."""

from .runner import LLMRequest, StageRunner

__all__ = ["LLMRequest", "StageRunner"]
