"""Navigation modes and the state machine that gates input routing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nuuslees.models import FeedItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Mode:
    """Base class for the exclusive top-level navigation state."""

    @property
    def label(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class GroupView(Mode):
    """Browsing the group list (tab 0)."""


@dataclass(frozen=True, slots=True)
class FeedList(Mode):
    """Browsing the feeds of one group."""


@dataclass(frozen=True, slots=True)
class ViewArticles(Mode):
    """Reading articles; carries a snapshot of the listed items."""

    items: tuple[FeedItem, ...] = ()

    @property
    def label(self) -> str:
        return f"ViewArticles ({len(self.items)})"


@dataclass(frozen=True, slots=True)
class Refreshing(Mode):
    """A feed synchronization is running in the background."""


class ModeMachine:
    """Holds the single active Mode.

    Refreshing overlays whichever navigation mode was active when the refresh
    began; tab selections made meanwhile update the mode to restore.
    """

    def __init__(self, initial: Mode | None = None) -> None:
        self._mode: Mode = initial if initial is not None else GroupView()
        self._resume: Mode | None = None

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def is_refreshing(self) -> bool:
        return isinstance(self._mode, Refreshing)

    @property
    def accepts_input(self) -> bool:
        """Whether key/mouse events may be routed to components."""
        return not self.is_refreshing

    def enter(self, mode: Mode) -> bool:
        """Switch to ``mode``. Returns True when the active mode changed."""
        if mode == self._mode:
            return False
        logger.debug("Mode %s -> %s", self._mode.label, mode.label)
        self._mode = mode
        return True

    def tab_selected(self, mode: Mode) -> bool:
        """Apply the mode of a newly selected tab (deferred while refreshing)."""
        if self.is_refreshing:
            self._resume = mode
            return False
        return self.enter(mode)

    def begin_refresh(self) -> bool:
        if self.is_refreshing:
            return False
        self._resume = self._mode
        return self.enter(Refreshing())

    def end_refresh(self) -> bool:
        if not self.is_refreshing:
            return False
        resume = self._resume if self._resume is not None else GroupView()
        self._resume = None
        return self.enter(resume)


__all__ = [
    "FeedList",
    "GroupView",
    "Mode",
    "ModeMachine",
    "Refreshing",
    "ViewArticles",
]
