"""One-line tab strip above the tab body."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

from nuuslees.components.base import Component
from nuuslees.terminal import Frame, Rect

TAB_STYLE = Style(color="grey70")
SELECTED_TAB_STYLE = Style(color="black", bgcolor="cyan", bold=True)
SEPARATOR = " │ "


class TabBar(Component):
    def __init__(self) -> None:
        super().__init__()
        self.labels: list[str] = []
        self.selected = 0
        self.area: Rect | None = None
        self._spans: list[tuple[int, int]] = []

    def add(self, label: str) -> None:
        self.labels.append(label)

    def remove(self, index: int) -> None:
        del self.labels[index]
        self.selected = min(self.selected, len(self.labels) - 1)

    def select(self, index: int) -> None:
        self.selected = index

    def tab_at(self, x: int) -> int | None:
        """Return the index of the tab drawn at column ``x`` of the last frame."""
        if self.area is None:
            return None
        column = x - self.area.x
        for index, (start, end) in enumerate(self._spans):
            if start <= column < end:
                return index
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        self.area = area
        self._spans = []
        text = Text(no_wrap=True, overflow="ellipsis")
        for index, label in enumerate(self.labels):
            if index:
                text.append(SEPARATOR, TAB_STYLE)
            start = text.cell_len
            text.append(
                f" {index + 1} {label} ",
                SELECTED_TAB_STYLE if index == self.selected else TAB_STYLE,
            )
            self._spans.append((start, text.cell_len))
        frame.render(text, area)
