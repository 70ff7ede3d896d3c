"""Tab 0: the list of groups, led by the synthetic "All Feeds" entry."""

from __future__ import annotations

from rich.text import Text

from nuuslees.actions import Action, NewTabArticleViewAll, NewTabFeedView, Refresh
from nuuslees.components.base import (
    DESCRIPTION_STYLE,
    DOWN_KEYS,
    NAME_STYLE,
    OPEN_KEYS,
    SELECTED_NAME_STYLE,
    UP_KEYS,
    ListState,
    TabComponent,
    render_list,
)
from nuuslees.mode import GroupView as GroupViewMode
from nuuslees.mode import Mode
from nuuslees.models import Group, GroupStats
from nuuslees.terminal import Frame, KeyEvent, MouseEvent, MouseKind, Rect


class GroupView(TabComponent):
    def __init__(self, tab_index: int = 0) -> None:
        super().__init__(tab_index)
        self.groups: list[Group] = []
        self.stats: dict[int, GroupStats] = {}
        self.state = ListState()

    @property
    def mode(self) -> Mode:
        return GroupViewMode()

    @property
    def selected_group(self) -> Group | None:
        if not self.groups:
            return None
        return self.groups[self.state.selected]

    def handle_key(self, key: KeyEvent) -> Action | None:
        if not self.is_active or not self.groups:
            return None
        name = key.name
        if name in DOWN_KEYS:
            self.state.select_next(len(self.groups))
        elif name in UP_KEYS:
            self.state.select_previous(len(self.groups))
        elif name in OPEN_KEYS:
            return self._open(self.groups[self.state.selected])
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if not self.is_active or not self.groups:
            return None
        if mouse.kind is MouseKind.SCROLL_DOWN:
            self.state.select_next(len(self.groups))
        elif mouse.kind is MouseKind.SCROLL_UP:
            self.state.select_previous(len(self.groups))
        return None

    @staticmethod
    def _open(group: Group) -> Action:
        if group.is_aggregate:
            return NewTabArticleViewAll()
        return NewTabFeedView(group)

    def update(self, action: Action) -> Action | None:
        super().update(action)
        if isinstance(action, Refresh):
            self.groups = list(action.groups)
            self.stats = {s.group_id: s for s in action.stats}
            self.state.clamp(len(self.groups))
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        entries = []
        for index, group in enumerate(self.groups):
            stats = self.stats.get(group.id, GroupStats(group.id))
            selected = index == self.state.selected
            entries.append(
                [
                    Text(group.name, SELECTED_NAME_STYLE if selected else NAME_STYLE),
                    Text(group.description, DESCRIPTION_STYLE),
                    Text(f"({stats.read}/{stats.total}) read", DESCRIPTION_STYLE),
                ]
            )
        render_list(frame, area, entries, self.state, title="Groups")
