"""Action vocabulary routed through the dispatch loop.

Actions are immutable values: the loop hands the same instance to the root
and to every component, so nothing may mutate one after it is sent.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass

from nuuslees.mode import Mode
from nuuslees.models import Feed, FeedItem, Group, GroupStats

_request_nonces = itertools.count(1)


def new_request_nonce() -> int:
    """Return a process-wide monotonic id for one outstanding background request.

    Results carry the nonce of the request they answer; a component applies a
    result only when the nonce matches the request it last issued.
    """
    return next(_request_nonces)


@dataclass(frozen=True, slots=True)
class Action:
    """Base class for every message in the action queue."""

    @property
    def name(self) -> str:
        return type(self).__name__


# -- loop control ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Tick(Action):
    pass


@dataclass(frozen=True, slots=True)
class Render(Action):
    pass


@dataclass(frozen=True, slots=True)
class Resize(Action):
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Suspend(Action):
    pass


@dataclass(frozen=True, slots=True)
class Resume(Action):
    pass


@dataclass(frozen=True, slots=True)
class ConfirmQuit(Action):
    pass


@dataclass(frozen=True, slots=True)
class Quit(Action):
    pass


@dataclass(frozen=True, slots=True)
class Help(Action):
    pass


@dataclass(frozen=True, slots=True)
class Error(Action):
    message: str


@dataclass(frozen=True, slots=True)
class ModeChange(Action):
    mode: Mode


# -- tabs --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeTab(Action):
    index: int


@dataclass(frozen=True, slots=True)
class RemoveTab(Action):
    index: int


@dataclass(frozen=True, slots=True)
class NewTabFeedView(Action):
    group: Group


@dataclass(frozen=True, slots=True)
class NewTabArticleViewAll(Action):
    pass


@dataclass(frozen=True, slots=True)
class NewTabArticleViewGroup(Action):
    group: Group


@dataclass(frozen=True, slots=True)
class NewTabArticleViewFeed(Action):
    feed: Feed


# -- data refresh ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RequestRefresh(Action):
    pass


@dataclass(frozen=True, slots=True)
class Refresh(Action):
    groups: tuple[Group, ...]
    stats: tuple[GroupStats, ...] = ()


@dataclass(frozen=True, slots=True)
class RequestUpdateFeedView(Action):
    index: int
    group: Group
    nonce: int


@dataclass(frozen=True, slots=True)
class RequestUpdateArticleViewAll(Action):
    index: int
    nonce: int


@dataclass(frozen=True, slots=True)
class RequestUpdateArticleViewGroup(Action):
    index: int
    group: Group
    nonce: int


@dataclass(frozen=True, slots=True)
class RequestUpdateArticleViewFeed(Action):
    index: int
    feed: Feed
    nonce: int


@dataclass(frozen=True, slots=True)
class UpdateFeedView(Action):
    index: int
    feeds: tuple[Feed, ...]
    nonce: int


@dataclass(frozen=True, slots=True)
class UpdateArticleView(Action):
    index: int
    items: tuple[FeedItem, ...]
    nonce: int


# -- reader ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RequestUpdateReader(Action):
    index: int
    item: FeedItem
    nonce: int


@dataclass(frozen=True, slots=True)
class UpdateReader(Action):
    """Result of an article extraction; ``error`` is set when it failed."""

    index: int
    content: str
    nonce: int
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ActivateReader(Action):
    index: int


@dataclass(frozen=True, slots=True)
class ActivateFeedList(Action):
    index: int


ArticleRequest = (
    RequestUpdateArticleViewAll | RequestUpdateArticleViewGroup | RequestUpdateArticleViewFeed
)


def is_noisy(action: Action) -> bool:
    """Return True for the high-frequency actions excluded from debug logs."""
    return isinstance(action, Tick | Render)


__all__ = [
    "Action",
    "ActivateFeedList",
    "ActivateReader",
    "ArticleRequest",
    "ChangeTab",
    "ConfirmQuit",
    "Error",
    "Help",
    "ModeChange",
    "NewTabArticleViewAll",
    "NewTabArticleViewFeed",
    "NewTabArticleViewGroup",
    "NewTabFeedView",
    "Quit",
    "RemoveTab",
    "Refresh",
    "Render",
    "RequestRefresh",
    "RequestUpdateArticleViewAll",
    "RequestUpdateArticleViewFeed",
    "RequestUpdateArticleViewGroup",
    "RequestUpdateFeedView",
    "RequestUpdateReader",
    "Resize",
    "Resume",
    "Suspend",
    "Tick",
    "UpdateArticleView",
    "UpdateFeedView",
    "UpdateReader",
    "is_noisy",
    "new_request_nonce",
]
