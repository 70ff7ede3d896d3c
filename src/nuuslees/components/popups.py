"""Modal overlays: quit confirmation and key help."""

from __future__ import annotations

from rich import box
from rich.align import Align
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from nuuslees.actions import Action, ConfirmQuit, Help, Quit
from nuuslees.components.base import Component, Placement
from nuuslees.terminal import Frame, KeyEvent, Rect

POPUP_BORDER_STYLE = Style(color="yellow")
KEY_STYLE = Style(color="cyan", bold=True)

CONFIRM_KEYS = frozenset({"y", "Y", "enter"})
CANCEL_KEYS = frozenset({"n", "N", "escape"})

HELP_ENTRIES = (
    ("j / k", "Move down / up (reader: scroll)"),
    ("l / Enter", "Open the selected entry"),
    ("h", "Back from the reader to the article list"),
    ("H / L", "Previous / next tab"),
    ("x", "Close the current tab"),
    ("r", "Refresh all feeds"),
    ("?", "Toggle this help"),
    ("q", "Quit"),
    ("Z Z", "Quit without confirmation"),
    ("Ctrl+z", "Suspend"),
)


def _popup_area(area: Rect, width: int, height: int) -> Rect:
    width = min(width, area.width)
    height = min(height, area.height)
    return Rect(
        area.x + (area.width - width) // 2,
        area.y + (area.height - height) // 2,
        width,
        height,
    )


class QuitPopup(Component):
    """Asks for confirmation before quitting when ``confirm_quit`` is set."""

    placement = Placement.OVERLAY

    def __init__(self) -> None:
        super().__init__()
        self.visible = False

    @property
    def captures_input(self) -> bool:
        return self.visible

    def update(self, action: Action) -> Action | None:
        if isinstance(action, ConfirmQuit):
            if not self.config.confirm_quit:
                return Quit()
            self.visible = True
        elif isinstance(action, Quit):
            self.visible = False
        return None

    def handle_key(self, key: KeyEvent) -> Action | None:
        if not self.visible:
            return None
        if key.name in CONFIRM_KEYS:
            self.visible = False
            return Quit()
        if key.name in CANCEL_KEYS:
            self.visible = False
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        if not self.visible:
            return
        prompt = Text.assemble("Quit nuuslees? ", ("(y/n)", KEY_STYLE))
        frame.render(
            Panel(
                Align.center(prompt, vertical="middle"),
                box=box.ROUNDED,
                title="Quit",
                border_style=POPUP_BORDER_STYLE,
                height=5,
            ),
            _popup_area(area, 36, 5),
        )


class HelpPopup(Component):
    placement = Placement.OVERLAY

    def __init__(self) -> None:
        super().__init__()
        self.visible = False

    @property
    def captures_input(self) -> bool:
        return self.visible

    def update(self, action: Action) -> Action | None:
        if isinstance(action, Help):
            self.visible = not self.visible
        return None

    def handle_key(self, key: KeyEvent) -> Action | None:
        if self.visible and key.name in CANCEL_KEYS:
            self.visible = False
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        if not self.visible:
            return
        table = Table.grid(padding=(0, 2))
        table.add_column(style=KEY_STYLE, no_wrap=True)
        table.add_column()
        for keys, description in HELP_ENTRIES:
            table.add_row(keys, description)
        height = len(HELP_ENTRIES) + 2
        frame.render(
            Panel(
                table,
                box=box.ROUNDED,
                title="Keys",
                border_style=POPUP_BORDER_STYLE,
                height=height,
            ),
            _popup_area(area, 56, height),
        )
