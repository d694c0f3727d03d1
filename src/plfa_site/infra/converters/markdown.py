"""Markdown to HTML with markdown-it-py."""

from __future__ import annotations

import logging

from markdown_it import MarkdownIt

logger = logging.getLogger(__name__)


class MarkdownItRenderer:
    """CommonMark renderer with tables and raw HTML passthrough.

    Raw HTML must survive: Agda's highlighted code arrives as ``<pre>`` blocks
    inside the Markdown it emits, and posts mark their teaser with ``<!--more-->``.
    """

    def __init__(self) -> None:
        self._md = MarkdownIt("commonmark", {"html": True, "typographer": False}).enable("table")

    def render(self, markdown: str, *, path: str = "") -> str:
        html = self._md.render(markdown)
        logger.debug("Rendered %s (%d -> %d chars)", path or "<string>", len(markdown), len(html))
        return html
