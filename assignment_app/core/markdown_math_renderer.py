"""Markdown rendering for question text.

Question text is authored in Markdown (with ``$...$`` LaTeX left untouched
for client-side MathJax). Raw HTML in authored text is not passed through.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

_EMPTY_FRAGMENT = "<p><em>No content provided.</em></p>"


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str:
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return _EMPTY_FRAGMENT
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str | None) -> str:
        """Render without the wrapping paragraph, for option labels and flashcards."""
        sanitized = (markdown_text or "").strip()
        return self._markdown.renderInline(sanitized) if sanitized else ""


renderer = MarkdownMathRenderer()
