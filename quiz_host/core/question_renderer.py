"""Markdown rendering of question text for the browser view.

Trivia text arrives HTML-decoded, so raw HTML is disabled here and anything
that looks like a tag is escaped by the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class QuestionRenderer:
    """Converts question and option text into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": self.enable_html}).enable("strikethrough")

    def render_fragment(self, text: str) -> str:
        """Render block markdown; empty text gets a visible placeholder."""
        sanitized = text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, text: str) -> str:
        """Render a single line (an answer option) without a wrapping paragraph."""
        return self._markdown.renderInline(text.strip())


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = QuestionRenderer()
