"""Feeds of one group; created empty and filled by ``UpdateFeedView``."""

from __future__ import annotations

from rich.text import Text

from nuuslees.actions import (
    Action,
    NewTabArticleViewFeed,
    NewTabArticleViewGroup,
    Refresh,
    RequestUpdateFeedView,
    UpdateFeedView,
    new_request_nonce,
)
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
from nuuslees.mode import FeedList, Mode
from nuuslees.models import Feed, Group
from nuuslees.terminal import Frame, KeyEvent, MouseEvent, MouseKind, Rect


class FeedView(TabComponent):
    def __init__(self, tab_index: int, group: Group) -> None:
        super().__init__(tab_index)
        self.group = group
        self.feeds: list[Feed] = []
        self.state = ListState()
        self.pending_nonce: int | None = None

    @property
    def mode(self) -> Mode:
        return FeedList()

    @property
    def loading(self) -> bool:
        return self.pending_nonce is not None

    def request_feeds(self) -> RequestUpdateFeedView:
        """Issue a fresh request; only its answer will be applied."""
        self.pending_nonce = new_request_nonce()
        return RequestUpdateFeedView(self.tab_index, self.group, self.pending_nonce)

    def handle_key(self, key: KeyEvent) -> Action | None:
        if not self.is_active or not self.feeds:
            return None
        name = key.name
        if name in DOWN_KEYS:
            self.state.select_next(len(self.feeds))
        elif name in UP_KEYS:
            self.state.select_previous(len(self.feeds))
        elif name in OPEN_KEYS:
            feed = self.feeds[self.state.selected]
            if feed.is_aggregate:
                return NewTabArticleViewGroup(self.group)
            return NewTabArticleViewFeed(feed)
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if not self.is_active or not self.feeds:
            return None
        if mouse.kind is MouseKind.SCROLL_DOWN:
            self.state.select_next(len(self.feeds))
        elif mouse.kind is MouseKind.SCROLL_UP:
            self.state.select_previous(len(self.feeds))
        return None

    def update(self, action: Action) -> Action | None:
        super().update(action)
        if isinstance(action, UpdateFeedView):
            if action.nonce == self.pending_nonce:
                self.feeds = list(action.feeds)
                self.pending_nonce = None
                self.state.clamp(len(self.feeds))
        elif isinstance(action, Refresh):
            return self.request_feeds()
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        entries = []
        for index, feed in enumerate(self.feeds):
            selected = index == self.state.selected
            entries.append(
                [
                    Text(feed.name, SELECTED_NAME_STYLE if selected else NAME_STYLE),
                    Text(feed.description, DESCRIPTION_STYLE),
                ]
            )
        title = self.group.name
        if self.loading and not self.feeds:
            title += " (loading…)"
        render_list(frame, area, entries, self.state, title=title)
