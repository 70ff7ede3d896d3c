"""Bottom status line: version, current mode and the last message."""

from __future__ import annotations

from rich.cells import cell_len
from rich.style import Style
from rich.text import Text

from nuuslees.actions import Action, Error, ModeChange, Refresh
from nuuslees.components.base import Component, Placement
from nuuslees.mode import GroupView, Mode
from nuuslees.models import APP_VERSION
from nuuslees.terminal import Frame, Rect

BAR_STYLE = Style(color="white", bgcolor="grey23")
MODE_STYLE = Style(color="black", bgcolor="cyan", bold=True)
ERROR_STYLE = Style(color="red", bgcolor="grey23", bold=True)
HINT_STYLE = Style(color="grey62", bgcolor="grey23")

KEY_HINT = "? help  q quit  r refresh"


class InfoBar(Component):
    placement = Placement.STATUS

    def __init__(self) -> None:
        super().__init__()
        self.mode: Mode = GroupView()
        self.message = ""
        self.is_error = False

    def update(self, action: Action) -> Action | None:
        if isinstance(action, ModeChange):
            self.mode = action.mode
        elif isinstance(action, Error):
            self.message = action.message
            self.is_error = True
        elif isinstance(action, Refresh):
            self.message = f"{max(0, len(action.groups) - 1)} groups"
            self.is_error = False
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        text = Text(no_wrap=True, overflow="ellipsis", style=BAR_STYLE)
        text.append(f" nuuslees v{APP_VERSION} ", BAR_STYLE)
        text.append(f" {self.mode.label} ", MODE_STYLE)
        if self.message:
            text.append(f" {self.message}", ERROR_STYLE if self.is_error else BAR_STYLE)
        padding = area.width - text.cell_len - cell_len(KEY_HINT) - 1
        if padding > 0:
            text.append(" " * padding, BAR_STYLE)
            text.append(KEY_HINT + " ", HINT_STYLE)
        else:
            text.pad_right(max(0, area.width - text.cell_len))
        frame.render(text, area)
