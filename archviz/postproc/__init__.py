"""Post-processing helpers for model output and generated diagrams."""

from .analysis import render_analysis_html
from .extract import clean_diagram, extract_tagged_block, find_tagged_block, strip_code_fence
from .links import DiagramLinkRewriter, parse_click_directives

__all__ = [
    "DiagramLinkRewriter",
    "clean_diagram",
    "extract_tagged_block",
    "find_tagged_block",
    "parse_click_directives",
    "render_analysis_html",
    "strip_code_fence",
]
