"""Rewrites path-only click directives into repository links."""

from __future__ import annotations

import re
from typing import List

from ..models import ClickDirective

_CLICK_PATTERN = re.compile(r'(\bclick[ \t]+)([A-Za-z0-9_]+)([ \t]+)"([^"\n]+)"')
_FILE_SCHEME_PATTERN = re.compile(r"^file:///?", re.IGNORECASE)
_ABSOLUTE_URL_PREFIXES = ("http://", "https://")

NEW_TAB_TARGET = "_blank"


def parse_click_directives(diagram: str) -> List[ClickDirective]:
    """Return every well-formed ``click <node> "<target>"`` in order of appearance."""
    return [
        ClickDirective(
            node_id=match.group(2),
            target=match.group(4),
            start=match.start(),
            end=match.end(),
        )
        for match in _CLICK_PATTERN.finditer(diagram or "")
    ]


class DiagramLinkRewriter:
    """Turns ``click A "src/app.py"`` into an openable link on the repository host."""

    def rewrite(self, diagram: str, html_base_url: str, default_branch: str) -> str:
        """Return the diagram with every path-only click directive made absolute.

        Text that does not match a complete directive is passed through as-is.
        """
        if not diagram:
            return diagram
        base = html_base_url.rstrip("/")

        def _replace(match: "re.Match[str]") -> str:
            prefix, node_id, gap, target = match.groups()
            if target.lower().startswith(_ABSOLUTE_URL_PREFIXES):
                return match.group(0)
            url = self.build_url(target, base, default_branch)
            return f'{prefix}{node_id}{gap}"{url}" "{NEW_TAB_TARGET}"'

        return _CLICK_PATTERN.sub(_replace, diagram)

    @staticmethod
    def build_url(path: str, html_base_url: str, default_branch: str) -> str:
        relative = _FILE_SCHEME_PATTERN.sub("", path)
        segment = "tree" if relative.endswith("/") else "blob"
        return f"{html_base_url}/{segment}/{default_branch}/{relative}"


__all__ = ["NEW_TAB_TARGET", "DiagramLinkRewriter", "parse_click_directives"]
