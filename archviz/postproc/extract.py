"""Extraction of tagged blocks and diagram code from free-form model output."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Pattern

_FENCE_PATTERN = re.compile(r"```[ \t]*(?:mermaid)?[ \t]*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_OPENING_FENCE_PATTERN = re.compile(r"^```[ \t]*(?:mermaid)?[ \t]*(?:\n|$)", re.IGNORECASE)
_INIT_DIRECTIVE_PATTERN = re.compile(r"%%\{\s*init\b.*?\}%%[ \t]*\n?", re.DOTALL | re.IGNORECASE)


@lru_cache(maxsize=32)
def _tag_pattern(tag: str) -> Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<{name}\s*>(.*?)</{name}\s*>", re.DOTALL)


def find_tagged_block(text: str, tag: str) -> Optional[str]:
    """Return the trimmed body of the first ``<tag>...</tag>`` block, if any.

    A block whose body is blank counts as missing.
    """
    if not text or not tag:
        return None
    match = _tag_pattern(tag).search(text)
    if match is None:
        return None
    body = match.group(1).strip()
    return body or None


def extract_tagged_block(text: str, tag: str) -> str:
    """Return the tagged block body, or the whole trimmed text when it is absent."""
    block = find_tagged_block(text, tag)
    if block is not None:
        return block
    return (text or "").strip()


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence from diagram output."""
    stripped = (text or "").strip()
    match = _FENCE_PATTERN.search(stripped)
    if match is not None:
        return match.group(1).strip()
    # Output cut off by the token budget may open a fence it never closes.
    opening = _OPENING_FENCE_PATTERN.match(stripped)
    if opening is not None:
        return stripped[opening.end():].strip()
    return stripped


def strip_init_directive(text: str) -> str:
    """Drop ``%%{init: ...}%%`` preambles; theming is applied by the renderer."""
    return _INIT_DIRECTIVE_PATTERN.sub("", text or "").strip()


def clean_diagram(text: str) -> str:
    return strip_init_directive(strip_code_fence(text))


__all__ = [
    "clean_diagram",
    "extract_tagged_block",
    "find_tagged_block",
    "strip_code_fence",
    "strip_init_directive",
]
