"""Shared constants for stage prompting."""

from __future__ import annotations

from typing import Optional

STAGE_EXPLANATION = "explanation"
STAGE_MAPPING = "component_mapping"
STAGE_DIAGRAM = "diagram"

STAGE_ORDER: tuple[str, ...] = (STAGE_EXPLANATION, STAGE_MAPPING, STAGE_DIAGRAM)

# Tag each stage is asked to wrap its answer in; the diagram stage answers with raw code.
STAGE_TAGS: dict[str, Optional[str]] = {
    STAGE_EXPLANATION: "explanation",
    STAGE_MAPPING: "component_mapping",
    STAGE_DIAGRAM: None,
}

DEFAULT_PROMPT_PACK = "detailed"

# (reasoning effort, max output tokens) per stage for each prompt pack.
STAGE_PROFILES: dict[str, dict[str, tuple[Optional[str], int]]] = {
    "detailed": {
        STAGE_EXPLANATION: ("medium", 2000),
        STAGE_MAPPING: ("low", 2000),
        STAGE_DIAGRAM: ("low", 5000),
    },
    "concise": {
        STAGE_EXPLANATION: (None, 2000),
        STAGE_MAPPING: (None, 1000),
        STAGE_DIAGRAM: (None, 3000),
    },
}


__all__ = [
    "DEFAULT_PROMPT_PACK",
    "STAGE_DIAGRAM",
    "STAGE_EXPLANATION",
    "STAGE_MAPPING",
    "STAGE_ORDER",
    "STAGE_PROFILES",
    "STAGE_TAGS",
]
