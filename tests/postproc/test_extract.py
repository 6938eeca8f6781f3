"""Tests for tagged-block extraction and diagram clean-up."""

from __future__ import annotations

import pytest

from archviz.postproc.analysis import render_analysis_html
from archviz.postproc.extract import (
    clean_diagram,
    extract_tagged_block,
    find_tagged_block,
    strip_code_fence,
    strip_init_directive,
)


def test_extract_returns_trimmed_block_body() -> None:
    assert extract_tagged_block("noise <foo>  bar  </foo> noise", "foo") == "bar"


def test_extract_falls_back_to_trimmed_input_without_tag() -> None:
    text = "  The project is a CLI tool.\n"
    assert extract_tagged_block(text, "foo") == "The project is a CLI tool."
    assert find_tagged_block(text, "foo") is None


def test_extract_keeps_multiline_content() -> None:
    text = "<component_mapping>\n1. API: src/api/\n2. Web: web/index.ts\n</component_mapping>"
    assert extract_tagged_block(text, "component_mapping") == "1. API: src/api/\n2. Web: web/index.ts"


def test_extract_uses_first_block() -> None:
    text = "<explanation>first</explanation> and <explanation>second</explanation>"
    assert extract_tagged_block(text, "explanation") == "first"


def test_extract_ignores_other_tags() -> None:
    assert extract_tagged_block("<bar>x</bar>", "foo") == "<bar>x</bar>"


def test_extract_unclosed_tag_falls_back() -> None:
    text = "<explanation>Cut off by the token limit"
    assert extract_tagged_block(text, "explanation") == text


def test_extract_blank_block_falls_back_to_full_text() -> None:
    text = "<foo>   </foo> tail"
    assert find_tagged_block(text, "foo") is None
    assert extract_tagged_block(text, "foo") == text


def test_extract_escapes_tag_names() -> None:
    assert find_tagged_block("<axb>inner</axb>", "a.b") is None


@pytest.mark.parametrize("text", ["", "   \n\t"])
def test_extract_empty_input_returns_empty(text: str) -> None:
    assert extract_tagged_block(text, "foo") == ""


def test_extract_allows_markup_inside_block() -> None:
    text = "<explanation><b>Frontend</b> talks to <code>api/</code>.</explanation>"
    assert extract_tagged_block(text, "explanation") == "<b>Frontend</b> talks to <code>api/</code>."


def test_strip_code_fence_removes_mermaid_fence() -> None:
    fenced = "```mermaid\nflowchart TD\n  A --> B\n```"
    stripped = strip_code_fence(fenced)

    assert stripped == "flowchart TD\n  A --> B"
    assert "```" not in stripped
    assert strip_code_fence(stripped) == stripped


def test_strip_code_fence_handles_plain_fence_and_prose() -> None:
    text = "Here is the diagram:\n```\nflowchart TD\n  A --> B\n```\nLet me know!"
    assert strip_code_fence(text) == "flowchart TD\n  A --> B"


def test_strip_code_fence_handles_unterminated_fence() -> None:
    assert strip_code_fence("```mermaid\nflowchart TD\n  A --> B") == "flowchart TD\n  A --> B"


def test_strip_code_fence_passes_unfenced_text() -> None:
    assert strip_code_fence("  flowchart TD\n  A --> B  \n") == "flowchart TD\n  A --> B"


def test_strip_init_directive_removes_preamble() -> None:
    text = "%%{init: {'theme': 'dark'}}%%\nflowchart TD\n  A --> B"
    assert strip_init_directive(text) == "flowchart TD\n  A --> B"


def test_clean_diagram_strips_fence_and_preamble() -> None:
    raw = "```mermaid\n%%{ init: { 'flowchart': { 'curve': 'basis' } } }%%\nflowchart TD\n  A --> B\n```"
    cleaned = clean_diagram(raw)

    assert cleaned == "flowchart TD\n  A --> B"
    assert clean_diagram(cleaned) == cleaned


def test_render_analysis_html_wraps_explanation() -> None:
    html = render_analysis_html("Line one\nLine <b>two</b>\n")
    assert html == "<h3>Architecture Explanation</h3><div>Line one<br/>Line <b>two</b></div>"
