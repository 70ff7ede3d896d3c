"""Article list + reader split view.

The list holds the items of one scope (everything, a group, or a feed). Opening
an item asks the root for its content and moves focus to the reader; ``h``
moves it back.
"""

from __future__ import annotations

import dataclasses
import enum
import logging

from rich import box
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from nuuslees.actions import (
    Action,
    ActivateFeedList,
    ActivateReader,
    ArticleRequest,
    Refresh,
    RequestUpdateArticleViewAll,
    RequestUpdateArticleViewFeed,
    RequestUpdateArticleViewGroup,
    RequestUpdateReader,
    UpdateArticleView,
    UpdateReader,
    new_request_nonce,
)
from nuuslees.components.base import (
    BORDER_STYLE,
    DESCRIPTION_STYLE,
    DOWN_KEYS,
    FOCUSED_BORDER_STYLE,
    NAME_STYLE,
    OPEN_KEYS,
    SELECTED_NAME_STYLE,
    UP_KEYS,
    ActionSink,
    Component,
    ListState,
    TabComponent,
    render_list,
)
from nuuslees.content import plain_text, render_html
from nuuslees.mode import Mode, ViewArticles
from nuuslees.models import Feed, FeedItem, Group, UserConfig
from nuuslees.terminal import Frame, KeyEvent, MouseEvent, MouseKind, Rect

logger = logging.getLogger(__name__)

ERROR_STYLE = Style(color="red", bold=True)
READ_STYLE = Style(color="grey50")
BACK_KEYS = frozenset({"h", "left", "escape"})


class Focus(enum.Enum):
    LIST = "list"
    READER = "reader"


class ArticleList(Component):
    def __init__(self) -> None:
        super().__init__()
        self.items: list[FeedItem] = []
        self.state = ListState()
        self.focused = True

    @property
    def selected_item(self) -> FeedItem | None:
        if not self.items:
            return None
        return self.items[self.state.selected]

    def set_items(self, items: list[FeedItem]) -> None:
        self.items = items
        self.state.clamp(len(items))

    def replace_item(self, item: FeedItem) -> None:
        for index, existing in enumerate(self.items):
            if existing.id == item.id:
                self.items[index] = item

    def handle_key(self, key: KeyEvent) -> Action | None:
        name = key.name
        if name in DOWN_KEYS:
            self.state.select_next(len(self.items))
        elif name in UP_KEYS:
            self.state.select_previous(len(self.items))
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if mouse.kind is MouseKind.SCROLL_DOWN:
            self.state.select_next(len(self.items))
        elif mouse.kind is MouseKind.SCROLL_UP:
            self.state.select_previous(len(self.items))
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        entries = []
        for index, item in enumerate(self.items):
            if item.read:
                title_style = READ_STYLE
            elif index == self.state.selected:
                title_style = SELECTED_NAME_STYLE
            else:
                title_style = NAME_STYLE
            entries.append(
                [
                    Text(item.title, title_style),
                    Text(plain_text(item.description), DESCRIPTION_STYLE),
                ]
            )
        render_list(
            frame,
            area,
            entries,
            self.state,
            title="Articles",
            focused=self.focused,
            highlight=self.focused,
        )


class ArticleReader(Component):
    """Scrollable rendering of one article's content."""

    def __init__(self) -> None:
        super().__init__()
        self.title = ""
        self.lines: list[Text] = []
        self.scroll = 0
        self.error: str | None = None
        self.pending_nonce: int | None = None
        self.focused = False
        self._pending_title = ""

    def expect(self, nonce: int, title: str) -> None:
        self.pending_nonce = nonce
        self._pending_title = title

    def set_content(self, content: str) -> None:
        self.title = self._pending_title
        self.lines = render_html(content)
        self.scroll = 0
        self.error = None
        self.pending_nonce = None

    def show_error(self, message: str) -> None:
        """Keep the current content and report the failure above it."""
        self.error = message
        self.pending_nonce = None

    def scroll_by(self, delta: int) -> None:
        self.scroll = max(0, min(self.scroll + delta, max(0, len(self.lines) - 1)))

    def handle_key(self, key: KeyEvent) -> Action | None:
        name = key.name
        if name in DOWN_KEYS:
            self.scroll_by(1)
        elif name in UP_KEYS:
            self.scroll_by(-1)
        elif name in ("pagedown", " "):
            self.scroll_by(10)
        elif name == "pageup":
            self.scroll_by(-10)
        elif name == "g":
            self.scroll = 0
        elif name == "G":
            self.scroll_by(len(self.lines))
        return None

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if mouse.kind is MouseKind.SCROLL_DOWN:
            self.scroll_by(1)
        elif mouse.kind is MouseKind.SCROLL_UP:
            self.scroll_by(-1)
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        body = Text()
        if self.error:
            body.append(f"⚠ {self.error}\n", ERROR_STYLE)
        if self.pending_nonce is not None:
            body.append("Loading article…\n", DESCRIPTION_STYLE)
        body.append_text(Text("\n").join(self.lines[self.scroll :]))
        frame.render(
            Panel(
                body,
                box=box.ROUNDED,
                title=self.title or None,
                border_style=FOCUSED_BORDER_STYLE if self.focused else BORDER_STYLE,
                height=area.height,
            ),
            area,
        )


class ArticleView(TabComponent):
    """Tab showing the articles of ``scope``: ``None`` for all, a Group or a Feed."""

    def __init__(self, tab_index: int, scope: Group | Feed | None = None) -> None:
        super().__init__(tab_index)
        self.scope = scope
        self.article_list = ArticleList()
        self.reader = ArticleReader()
        self.focus = Focus.LIST
        self.pending_nonce: int | None = None
        self._reading: FeedItem | None = None

    @property
    def label(self) -> str:
        return "All Articles" if self.scope is None else self.scope.name

    @property
    def mode(self) -> Mode:
        return ViewArticles(tuple(self.article_list.items))

    def register_action_sink(self, sink: ActionSink) -> None:
        super().register_action_sink(sink)
        self.article_list.register_action_sink(sink)
        self.reader.register_action_sink(sink)

    def register_config(self, config: UserConfig) -> None:
        super().register_config(config)
        self.article_list.register_config(config)
        self.reader.register_config(config)

    def init(self, viewport: Rect) -> None:
        super().init(viewport)
        self.article_list.init(viewport)
        self.reader.init(viewport)

    def request_articles(self) -> ArticleRequest:
        """Issue a fresh request for this tab's items."""
        nonce = new_request_nonce()
        self.pending_nonce = nonce
        if self.scope is None:
            return RequestUpdateArticleViewAll(self.tab_index, nonce)
        if isinstance(self.scope, Group):
            return RequestUpdateArticleViewGroup(self.tab_index, self.scope, nonce)
        return RequestUpdateArticleViewFeed(self.tab_index, self.scope, nonce)

    def open_item(self, item: FeedItem) -> None:
        nonce = new_request_nonce()
        self._reading = item
        self.reader.expect(nonce, item.title)
        self.send(RequestUpdateReader(self.tab_index, item, nonce))
        self.send(ActivateReader(self.tab_index))

    def _set_focus(self, focus: Focus) -> None:
        self.focus = focus
        self.article_list.focused = focus is Focus.LIST
        self.reader.focused = focus is Focus.READER

    def handle_key(self, key: KeyEvent) -> Action | None:
        if not self.is_active:
            return None
        name = key.name
        if self.focus is Focus.READER:
            if name in BACK_KEYS:
                return ActivateFeedList(self.tab_index)
            return self.reader.handle_key(key)
        if name in OPEN_KEYS:
            item = self.article_list.selected_item
            if item is not None:
                self.open_item(item)
            return None
        return self.article_list.handle_key(key)

    def handle_mouse(self, mouse: MouseEvent) -> Action | None:
        if not self.is_active:
            return None
        if self.focus is Focus.READER:
            return self.reader.handle_mouse(mouse)
        return self.article_list.handle_mouse(mouse)

    def update(self, action: Action) -> Action | None:
        super().update(action)
        if isinstance(action, UpdateArticleView):
            if action.nonce == self.pending_nonce:
                self.article_list.set_items(list(action.items))
                self.pending_nonce = None
        elif isinstance(action, UpdateReader):
            if action.nonce != self.reader.pending_nonce:
                logger.debug("Ignoring stale reader result %d", action.nonce)
            elif action.error is not None:
                self.reader.show_error(action.error)
            else:
                self.reader.set_content(action.content)
                if self._reading is not None:
                    self.article_list.replace_item(
                        dataclasses.replace(self._reading, content=action.content, read=True)
                    )
        elif isinstance(action, ActivateReader) and action.index == self.tab_index:
            self._set_focus(Focus.READER)
        elif isinstance(action, ActivateFeedList) and action.index == self.tab_index:
            self._set_focus(Focus.LIST)
        elif isinstance(action, Refresh):
            return self.request_articles()
        return None

    def draw(self, frame: Frame, area: Rect) -> None:
        list_area, reader_area = area.split_columns(30, 70)
        self.article_list.draw(frame, list_area)
        self.reader.draw(frame, reader_area)
