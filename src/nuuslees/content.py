"""Convert article HTML into styled rich text lines for the reader pane."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from rich.style import Style
from rich.text import Text

PARAGRAPH_STYLE = Style(meta={"tag": "paragraph"})
HEADING_STYLE = Style(bold=True, meta={"tag": "heading"})
LINK_STYLE = Style(color="blue", underline=True, meta={"tag": "link"})

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
_BLOCK_TAGS = frozenset({"div", "section", "article", "blockquote", "pre", "ul", "ol", "table"})
_SKIPPED_TAGS = frozenset({"script", "style", "noscript", "head", "title"})
_WHITESPACE_RE = re.compile(r"\s+")


class _LineBuilder:
    """Accumulates runs into the current line and closes lines on block edges."""

    def __init__(self) -> None:
        self.lines: list[Text] = []
        self._current = Text()

    def append(self, text: str, style: Style) -> None:
        text = _WHITESPACE_RE.sub(" ", text)
        if not self._current.plain:
            text = text.lstrip()
        elif self._current.plain.endswith(" ") and text.startswith(" "):
            text = text[1:]
        if text:
            self._current.append(text, style)

    def break_line(self) -> None:
        if self._current.plain.strip():
            self._current.rstrip()
            self.lines.append(self._current)
        self._current = Text()

    def blank_line(self) -> None:
        self.break_line()
        if self.lines and self.lines[-1].plain:
            self.lines.append(Text())

    def finish(self) -> list[Text]:
        self.break_line()
        while self.lines and not self.lines[-1].plain:
            self.lines.pop()
        return self.lines


def _walk(node: Tag, builder: _LineBuilder, style: Style) -> None:
    for child in node.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            builder.append(str(child), style)
            continue
        if not isinstance(child, Tag) or child.name in _SKIPPED_TAGS:
            continue

        name = child.name
        if name == "p":
            builder.blank_line()
            _walk(child, builder, style + PARAGRAPH_STYLE)
            builder.blank_line()
        elif name in HEADING_TAGS:
            builder.blank_line()
            _walk(child, builder, style + HEADING_STYLE)
            builder.blank_line()
        elif name == "a":
            _walk(child, builder, style + LINK_STYLE)
        elif name == "br":
            builder.break_line()
        elif name == "li":
            builder.break_line()
            builder.append("• ", style)
            _walk(child, builder, style)
            builder.break_line()
        elif name in _BLOCK_TAGS:
            builder.break_line()
            _walk(child, builder, style)
            builder.break_line()
        else:
            _walk(child, builder, style)


def render_html(document: str) -> list[Text]:
    """Render an HTML document (or plain text) as a list of styled lines.

    Paragraphs are separated by a blank line, headings are bold and links
    blue; each run's ``Style.meta["tag"]`` names which of these it came from.
    """
    soup = BeautifulSoup(document, "html.parser")
    builder = _LineBuilder()
    _walk(soup, builder, Style())
    return builder.finish()


def plain_text(document: str) -> str:
    """Flatten an HTML fragment (such as a feed summary) to one line of text."""
    text = BeautifulSoup(document, "html.parser").get_text(" ")
    return _WHITESPACE_RE.sub(" ", text).strip()


__all__ = [
    "HEADING_STYLE",
    "LINK_STYLE",
    "PARAGRAPH_STYLE",
    "plain_text",
    "render_html",
]
