"""Tab workspace: owns the open tabs and keeps their indices consistent.

Tab 0 is always the group list. Every other tab is created empty by a
``NewTab*`` action and filled once the request it returns is answered.
"""

from __future__ import annotations

import logging

from nuuslees.actions import (
    Action,
    ChangeTab,
    NewTabArticleViewAll,
    NewTabArticleViewFeed,
    NewTabArticleViewGroup,
    NewTabFeedView,
    RemoveTab,
)
from nuuslees.components.article_view import ArticleView
from nuuslees.components.base import ActionSink, Component, TabComponent
from nuuslees.components.feed_view import FeedView
from nuuslees.components.group_view import GroupView
from nuuslees.components.tab_bar import TabBar
from nuuslees.mode import Mode
from nuuslees.models import UserConfig
from nuuslees.terminal import Frame, KeyEvent, MouseEvent, MouseKind, Rect

logger = logging.getLogger(__name__)

GROUPS_TAB_LABEL = "Groups"


class TabViewer(Component):
    def __init__(self, groups_tab: TabComponent | None = None) -> None:
        super().__init__()
        self.tab_bar = TabBar()
        self.tabs: list[TabComponent] = []
        self.selected = 0
        self.add_tab(GROUPS_TAB_LABEL, groups_tab if groups_tab is not None else GroupView())

    # -- lifecycle ------------------------------------------------------------

    def register_action_sink(self, sink: ActionSink) -> None:
        super().register_action_sink(sink)
        for tab in self.tabs:
            tab.register_action_sink(sink)

    def register_config(self, config: UserConfig) -> None:
        super().register_config(config)
        for tab in self.tabs:
            tab.register_config(config)

    def init(self, viewport: Rect) -> None:
        super().init(viewport)
        for tab in self.tabs:
            tab.init(viewport)

    # -- tab operations -------------------------------------------------------

    @property
    def active_tab(self) -> TabComponent:
        return self.tabs[self.selected]

    def mode_of(self, index: int) -> Mode:
        return self.tabs[index].mode

    def add_tab(self, label: str, component: TabComponent) -> int:
        """Append ``component``, select it and return its index."""
        if self._sink is not None:
            component.register_action_sink(self._sink)
        component.register_config(self.config)
        if self.viewport is not None:
            component.init(self.viewport)
        index = len(self.tabs)
        component.reindex(index)
        self.tabs.append(component)
        self.tab_bar.add(label)
        logger.debug("Added tab %d (%s)", index, label)
        self.select_tab(index)
        return index

    def remove_tab(self, index: int) -> bool:
        """Close the tab at ``index``; the group list (tab 0) cannot be closed."""
        if index <= 0 or index >= len(self.tabs):
            logger.debug("Refusing to remove tab %d", index)
            return False
        del self.tabs[index]
        self.tab_bar.remove(index)
        for position in range(index, len(self.tabs)):
            self.tabs[position].reindex(position)
        if self.selected >= index:
            self.selected -= 1
        logger.debug("Removed tab %d; selected %d", index, self.selected)
        self.send(RemoveTab(index))
        self.select_tab(self.selected)
        return True

    def select_tab(self, index: int) -> None:
        index = max(0, min(index, len(self.tabs) - 1))
        self._apply_selection(index)
        self.send(ChangeTab(index))

    def _apply_selection(self, index: int) -> None:
        self.selected = index
        self.tab_bar.select(index)
        for position, tab in enumerate(self.tabs):
            tab.is_active = position == index

    # -- input ----------------------------------------------------------------

    def handle_key(self, key: KeyEvent) -> Action | None:
        name = key.name
        if name == "H":
            self.select_tab((self.selected - 1) % len(self.tabs))
            return None
        if name == "L":
            self.select_tab((self.selected + 1) % len(self.tabs))
            return None
        if name == "x":
            self.remove_tab(self.selected)
            return None
        for tab in list(self.tabs):
            self._forward(tab.handle_key(key))
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if mouse.kind is MouseKind.CLICK:
            index = self.tab_bar.tab_at(mouse.x) if self._on_tab_bar(mouse) else None
            if index is not None:
                self.select_tab(index)
            return None
        for tab in list(self.tabs):
            self._forward(tab.handle_mouse(mouse))
        return None

    def _on_tab_bar(self, mouse: MouseEvent) -> bool:
        area = self.tab_bar.area
        return area is not None and area.y <= mouse.y < area.bottom

    def _forward(self, follow_up: Action | None) -> None:
        if follow_up is not None:
            self.send(follow_up)

    # -- actions --------------------------------------------------------------

    def update(self, action: Action) -> Action | None:
        if isinstance(action, NewTabFeedView):
            tab = FeedView(len(self.tabs), action.group)
            self.add_tab(action.group.name, tab)
            return tab.request_feeds()
        if isinstance(action, NewTabArticleViewAll | NewTabArticleViewGroup | NewTabArticleViewFeed):
            return self._open_articles(action)

        for tab in list(self.tabs):
            self._forward(tab.update(action))
        return None

    def _open_articles(
        self, action: NewTabArticleViewAll | NewTabArticleViewGroup | NewTabArticleViewFeed
    ) -> Action:
        if isinstance(action, NewTabArticleViewGroup):
            scope = action.group
        elif isinstance(action, NewTabArticleViewFeed):
            scope = action.feed
        else:
            scope = None
        tab = ArticleView(len(self.tabs), scope)
        self.add_tab(tab.label, tab)
        return tab.request_articles()

    # -- render ---------------------------------------------------------------

    def draw(self, frame: Frame, area: Rect) -> None:
        bar_area, body_area = area.split_rows(1, None)
        self.tab_bar.draw(frame, bar_area)
        self.active_tab.draw(frame, body_area)
