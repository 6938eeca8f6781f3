"""Rich-text rendering of the architecture explanation."""

from __future__ import annotations

ANALYSIS_HEADING = "Architecture Explanation"


def render_analysis_html(explanation: str) -> str:
    """Wrap the explanation for display; inline markup from the model is kept."""
    body = (explanation or "").strip().replace("\r\n", "\n").replace("\n", "<br/>")
    return f"<h3>{ANALYSIS_HEADING}</h3><div>{body}</div>"


__all__ = ["ANALYSIS_HEADING", "render_analysis_html"]
