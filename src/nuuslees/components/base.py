"""The Component contract shared by every UI node, plus list helpers."""

from __future__ import annotations

import abc
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from rich import box
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from nuuslees.actions import Action, ChangeTab
from nuuslees.mode import Mode
from nuuslees.models import UserConfig
from nuuslees.terminal import Event, Frame, KeyEvent, MouseEvent, Rect

logger = logging.getLogger(__name__)

NAME_STYLE = Style(color="magenta", bold=True)
SELECTED_NAME_STYLE = Style(color="cyan", bold=True)
DESCRIPTION_STYLE = Style(color="grey70")
BORDER_STYLE = Style(color="grey50")
FOCUSED_BORDER_STYLE = Style(color="cyan")
HIGHLIGHT_SYMBOL = " ┃ "

DOWN_KEYS = frozenset({"j", "down"})
UP_KEYS = frozenset({"k", "up"})
OPEN_KEYS = frozenset({"l", "enter", "right"})


class ActionSink(Protocol):
    def send(self, action: Action) -> None: ...


class Placement(enum.Enum):
    """Where the root lays a top-level component out."""

    BODY = "body"
    STATUS = "status"
    OVERLAY = "overlay"


class Component:
    """Base UI node: every hook is a no-op until a subclass overrides it.

    Handlers may return at most one follow-up action; anything further goes
    through ``send``. A follow-up is not guaranteed to be processed before
    sibling components see the current action.
    """

    placement = Placement.BODY

    def __init__(self) -> None:
        self._sink: ActionSink | None = None
        self.config = UserConfig()
        self.viewport: Rect | None = None

    def register_action_sink(self, sink: ActionSink) -> None:
        self._sink = sink

    def register_config(self, config: UserConfig) -> None:
        self.config = config

    def init(self, viewport: Rect) -> None:
        self.viewport = viewport

    def send(self, action: Action) -> None:
        if self._sink is None:
            logger.debug("%s dropped %s: no action sink", type(self).__name__, action.name)
            return
        self._sink.send(action)

    @property
    def captures_input(self) -> bool:
        """True while this component is modal and should receive all input."""
        return False

    def handle_terminal_event(self, event: Event) -> Action | None:
        if isinstance(event, KeyEvent):
            return self.handle_key(event)
        if isinstance(event, MouseEvent):
            return self.handle_mouse(event)
        return None

    def handle_key(self, key: KeyEvent) -> Action | None:
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        return None

    def update(self, action: Action) -> Action | None:
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        pass


class TabComponent(Component, abc.ABC):
    """A component that lives in the tab viewer at ``tab_index``."""

    def __init__(self, tab_index: int) -> None:
        super().__init__()
        self.tab_index = tab_index
        self.is_active = True

    def reindex(self, new_index: int) -> None:
        self.tab_index = new_index

    @property
    @abc.abstractmethod
    def mode(self) -> Mode: ...

    def update(self, action: Action) -> Action | None:
        if isinstance(action, ChangeTab):
            self.is_active = action.index == self.tab_index
        return None


@dataclass(slots=True)
class ListState:
    """Selection and scroll offset of a vertical list; selection wraps."""

    selected: int = 0
    offset: int = 0

    def select_next(self, count: int) -> None:
        if count:
            self.selected = (self.selected + 1) % count

    def select_previous(self, count: int) -> None:
        if count:
            self.selected = (self.selected - 1) % count

    def clamp(self, count: int) -> None:
        self.selected = min(max(0, self.selected), max(0, count - 1))
        self.offset = min(self.offset, self.selected)


def render_list(
    frame: Frame,
    area: Rect,
    entries: Sequence[Sequence[Text]],
    state: ListState,
    *,
    title: str = "",
    focused: bool = True,
    highlight: bool = True,
) -> None:
    """Draw ``entries`` (each one or more lines) in a bordered box.

    The scroll offset is adjusted so the selected entry is fully visible.
    """
    height = max(0, area.height - 2)
    state.clamp(len(entries))
    if state.selected < state.offset:
        state.offset = state.selected
    while state.offset < state.selected and _rows(entries, state.offset, state.selected) > height:
        state.offset += 1

    body = Text(no_wrap=True, overflow="ellipsis")
    used = 0
    for index in range(state.offset, len(entries)):
        entry = entries[index]
        if used + len(entry) > height:
            break
        marker = HIGHLIGHT_SYMBOL if highlight and index == state.selected else " " * len(HIGHLIGHT_SYMBOL)
        for line in entry:
            if used:
                body.append("\n")
            body.append(marker, FOCUSED_BORDER_STYLE if focused else BORDER_STYLE)
            body.append_text(line)
            used += 1

    frame.render(
        Panel(
            body,
            box=box.ROUNDED,
            title=title or None,
            border_style=FOCUSED_BORDER_STYLE if focused else BORDER_STYLE,
            height=area.height,
        ),
        area,
    )


def _rows(entries: Sequence[Sequence[Text]], start: int, end: int) -> int:
    return sum(len(entries[i]) for i in range(start, end + 1))


__all__ = [
    "ActionSink",
    "Component",
    "ListState",
    "Placement",
    "TabComponent",
    "render_list",
]
