"""The action dispatch loop.

One coroutine owns all UI and domain state. It waits for the next terminal
event or timer, turns it into actions, and drains the action queue: each
action is applied to root state and then handed to every component.
Blocking work (storage, sync, article extraction) runs off the loop and
comes back as ordinary actions.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
from collections import deque
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from nuuslees.actions import (
    Action,
    ArticleRequest,
    ChangeTab,
    ConfirmQuit,
    Error,
    Help,
    ModeChange,
    Quit,
    Refresh,
    RemoveTab,
    Render,
    RequestRefresh,
    RequestUpdateArticleViewAll,
    RequestUpdateArticleViewFeed,
    RequestUpdateArticleViewGroup,
    RequestUpdateFeedView,
    RequestUpdateReader,
    Resize,
    Resume,
    Suspend,
    Tick,
    UpdateArticleView,
    UpdateFeedView,
    UpdateReader,
    is_noisy,
)
from nuuslees.components import Component, HelpPopup, InfoBar, Placement, QuitPopup, TabViewer
from nuuslees.errors import FormatError, NetworkError, RenderError, StorageError
from nuuslees.extract import ArticleExtractor
from nuuslees.mode import ModeMachine
from nuuslees.models import FeedItem, UserConfig
from nuuslees.storage import Database
from nuuslees.sync import Synchronizer
from nuuslees.terminal import (
    Event,
    Frame,
    KeyEvent,
    MouseEvent,
    QuitEvent,
    Rect,
    RenderEvent,
    ResizeEvent,
    ResumeEvent,
    SuspendEvent,
    Terminal,
    TickEvent,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upper bound on actions processed in one drain pass
DRAIN_LIMIT = 1000

QUIT_CHORD = ("Z", "Z")

GLOBAL_SHORTCUTS: dict[str, Callable[[], Action]] = {
    "q": ConfirmQuit,
    "ctrl+c": Quit,
    "ctrl+z": Suspend,
    "?": Help,
    "r": RequestRefresh,
}


class LoopState(enum.Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"
    QUITTING = "quitting"


class ActionQueue:
    """Unbounded FIFO of actions with a wake signal for the loop."""

    def __init__(self) -> None:
        self._items: deque[Action] = deque()
        self.wake = asyncio.Event()

    def __len__(self) -> int:
        return len(self._items)

    def send(self, action: Action) -> None:
        self._items.append(action)
        self.wake.set()

    def drain(self, limit: int = DRAIN_LIMIT) -> Iterator[Action]:
        """Yield queued actions in order, including ones sent while draining."""
        self.wake.clear()
        processed = 0
        while self._items:
            if processed >= limit:
                logger.warning(
                    "Drain limit of %d actions reached; deferring %d", limit, len(self._items)
                )
                self.wake.set()
                return
            processed += 1
            yield self._items.popleft()


class StorageWorker:
    """Runs every storage and sync call on one dedicated thread, in order."""

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nuuslees-storage")

    async def call(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)


def default_components() -> list[Component]:
    return [TabViewer(), InfoBar(), QuitPopup(), HelpPopup()]


class NuusleesApp:
    """Root of the component tree and owner of the action queue."""

    def __init__(
        self,
        config: UserConfig,
        database: Database,
        synchronizer: Synchronizer,
        extractor: ArticleExtractor,
        *,
        components: list[Component] | None = None,
        drain_limit: int = DRAIN_LIMIT,
    ) -> None:
        self.config = config
        self.database = database
        self.synchronizer = synchronizer
        self.extractor = extractor
        self.components = components if components is not None else default_components()
        self.tab_viewer = next((c for c in self.components if isinstance(c, TabViewer)), None)
        self.drain_limit = drain_limit
        self.queue = ActionQueue()
        self.worker = StorageWorker()
        self.modes = ModeMachine()
        self.state = LoopState.RUNNING
        self.terminal: Terminal | None = None
        self._pending_keys: list[str] = []
        self._background_tasks: set[asyncio.Task[None]] = set()

    # ========================================================================
    # Main loop
    # ========================================================================

    async def run(self, terminal: Terminal) -> int:
        """Drive the UI until a Quit action; returns the process exit code."""
        self.terminal = terminal
        width, height = terminal.size()
        viewport = Rect(0, 0, width, height)
        for component in self.components:
            component.register_action_sink(self.queue)
            component.register_config(self.config)
            component.init(viewport)

        await self._publish_groups()
        if self.config.refresh_on_start:
            self.queue.send(RequestRefresh())

        terminal.enter()
        self.state = LoopState.RUNNING
        try:
            self._drain()
            while self.state is not LoopState.QUITTING:
                event = await terminal.events.next(self.queue.wake)
                if event is not None:
                    self._handle_event(event)
                self._drain()
                if self.state is LoopState.SUSPENDED:
                    self._suspend()
        finally:
            terminal.exit()
            await self._shutdown()
        logger.info("Dispatch loop stopped")
        return 0

    def _drain(self) -> None:
        for action in self.queue.drain(self.drain_limit):
            if not is_noisy(action):
                logger.debug("Action: %s", action.name)
            self._apply(action)
            for component in self.components:
                follow_up = component.update(action)
                if follow_up is None:
                    continue
                if follow_up == action:
                    logger.warning(
                        "Dropping %s re-sent by %s while handling it",
                        action.name,
                        type(component).__name__,
                    )
                    continue
                self.queue.send(follow_up)
            self._sync_mode(action)
            if self.state is LoopState.QUITTING:
                return

    def _suspend(self) -> None:
        assert self.terminal is not None
        logger.info("Suspending")
        self.terminal.exit()
        self.terminal.suspend()
        self.terminal.enter()
        self.state = LoopState.RUNNING
        self.queue.send(Resume())

    async def _shutdown(self) -> None:
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background_tasks.clear()
        self.worker.shutdown()

    # ========================================================================
    # Terminal events
    # ========================================================================

    def _handle_event(self, event: Event) -> None:
        if isinstance(event, TickEvent):
            self.queue.send(Tick())
        elif isinstance(event, RenderEvent):
            self.queue.send(Render())
        elif isinstance(event, ResizeEvent):
            self.queue.send(Resize(event.width, event.height))
        elif isinstance(event, QuitEvent):
            self.queue.send(Quit())
        elif isinstance(event, SuspendEvent):
            self.queue.send(Suspend())
        elif isinstance(event, ResumeEvent):
            self.queue.send(Resume())
        elif isinstance(event, KeyEvent):
            shortcut = self._global_shortcut(event)
            if shortcut is not None:
                self.queue.send(shortcut)
                return
            self._route_input(event)
        elif isinstance(event, MouseEvent):
            self._route_input(event)

    def _global_shortcut(self, key: KeyEvent) -> Action | None:
        name = key.name
        factory = GLOBAL_SHORTCUTS.get(name)
        if factory is not None:
            self._pending_keys.clear()
            return factory()
        self._pending_keys.append(name)
        del self._pending_keys[: -len(QUIT_CHORD)]
        if tuple(self._pending_keys) == QUIT_CHORD:
            self._pending_keys.clear()
            return Quit()
        return None

    def _route_input(self, event: KeyEvent | MouseEvent) -> None:
        # Popups stay answerable during a refresh; only the tab fan-out is gated
        modal = next((c for c in self.components if c.captures_input), None)
        if modal is None and not self.modes.accepts_input:
            logger.debug("Ignoring input while %s", self.modes.mode.label)
            return
        targets = [modal] if modal is not None else self.components
        for component in targets:
            follow_up = component.handle_terminal_event(event)
            if follow_up is not None:
                self.queue.send(follow_up)

    # ========================================================================
    # Root effects
    # ========================================================================

    def _apply(self, action: Action) -> None:
        if isinstance(action, Tick):
            self._pending_keys.clear()
        elif isinstance(action, Render):
            self._draw()
        elif isinstance(action, Resize):
            assert self.terminal is not None
            self.terminal.resize(action.width, action.height)
            self._draw()
        elif isinstance(action, Resume):
            self._draw()
        elif isinstance(action, Suspend):
            self.state = LoopState.SUSPENDED
        elif isinstance(action, Quit):
            logger.info("Quit requested")
            self.state = LoopState.QUITTING
        elif isinstance(action, RequestRefresh):
            self._start_refresh()
        elif isinstance(action, RequestUpdateFeedView):
            self._track_task(self._load_feeds(action))
        elif isinstance(
            action,
            RequestUpdateArticleViewAll | RequestUpdateArticleViewGroup | RequestUpdateArticleViewFeed,
        ):
            self._track_task(self._load_articles(action))
        elif isinstance(action, RequestUpdateReader):
            self._track_task(self._load_reader(action))
        elif isinstance(action, Error):
            logger.warning("Error surfaced to UI: %s", action.message)

    def _sync_mode(self, action: Action) -> None:
        """Mirror the selected tab's mode once components have seen ``action``."""
        viewer = self.tab_viewer
        if viewer is None:
            return
        affects_selected = isinstance(action, ChangeTab | RemoveTab) or (
            isinstance(action, UpdateArticleView) and action.index == viewer.selected
        )
        if not affects_selected:
            return
        if self.modes.tab_selected(viewer.mode_of(viewer.selected)):
            self.queue.send(ModeChange(self.modes.mode))

    def _draw(self) -> None:
        assert self.terminal is not None
        failures: list[RenderError] = []

        def paint(frame: Frame) -> None:
            body, status = frame.area.split_rows(None, 1)
            areas = {Placement.BODY: body, Placement.STATUS: status, Placement.OVERLAY: frame.area}
            for component in self.components:
                try:
                    component.draw(frame, areas[component.placement])
                except Exception as exc:
                    error = RenderError(type(component).__name__, str(exc) or type(exc).__name__)
                    logger.error("%s", error, exc_info=True)
                    failures.append(error)

        self.terminal.draw(paint)
        for error in failures:
            self.queue.send(Error(str(error)))

    # ========================================================================
    # Background work
    # ========================================================================

    def _track_task(self, coro: Any) -> asyncio.Task[None]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    def _start_refresh(self) -> None:
        if not self.modes.begin_refresh():
            logger.info("Refresh already running; ignoring request")
            return
        self.queue.send(ModeChange(self.modes.mode))
        self._track_task(self._refresh())

    async def _refresh(self) -> None:
        try:
            report = await self.worker.call(self.synchronizer.sync, self.config)
            await self._publish_groups()
            if not report.ok:
                self.queue.send(Error(report.summary()))
        finally:
            if self.modes.end_refresh():
                self.queue.send(ModeChange(self.modes.mode))

    def _read_groups(self) -> Refresh:
        return Refresh(tuple(self.database.list_groups()), tuple(self.database.group_stats()))

    async def _publish_groups(self) -> None:
        try:
            refresh = await self.worker.call(self._read_groups)
        except StorageError as exc:
            logger.error("Failed to load groups: %s", exc, exc_info=True)
            self.queue.send(Error(f"Failed to load groups: {exc}"))
            return
        self.queue.send(refresh)

    async def _load_feeds(self, request: RequestUpdateFeedView) -> None:
        try:
            feeds = await self.worker.call(self.database.list_feeds_for_group, request.group.id)
        except StorageError as exc:
            logger.error("Failed to load feeds of %s: %s", request.group.name, exc, exc_info=True)
            self.queue.send(Error(f"Failed to load feeds: {exc}"))
            return
        self.queue.send(UpdateFeedView(request.index, tuple(feeds), request.nonce))

    def _query_articles(self, request: ArticleRequest) -> list[FeedItem]:
        if isinstance(request, RequestUpdateArticleViewFeed):
            return self.database.feed_items_for_feed(request.feed.id)
        if isinstance(request, RequestUpdateArticleViewGroup):
            return self.database.feed_items_for_group(request.group.id)
        return self.database.all_feed_items()

    async def _load_articles(self, request: ArticleRequest) -> None:
        try:
            items = await self.worker.call(self._query_articles, request)
        except StorageError as exc:
            logger.error("Failed to load articles: %s", exc, exc_info=True)
            self.queue.send(Error(f"Failed to load articles: {exc}"))
            return
        self.queue.send(UpdateArticleView(request.index, tuple(items), request.nonce))

    async def _load_reader(self, request: RequestUpdateReader) -> None:
        item = request.item
        content = item.content
        if not content:
            try:
                content = await asyncio.to_thread(self.extractor.extract, item.url)
            except (NetworkError, FormatError) as exc:
                logger.warning("Article extraction failed for %s: %s", item.url, exc)
                self.queue.send(UpdateReader(request.index, "", request.nonce, error=str(exc)))
                self.queue.send(Error(str(exc)))
                return
        self.queue.send(UpdateReader(request.index, content, request.nonce))
        try:
            if content != item.content:
                await self.worker.call(self.database.set_item_content, item.id, content)
            await self.worker.call(self.database.mark_item_read, item.id)
        except StorageError:
            logger.warning("Failed to store article state for %s", item.url, exc_info=True)


__all__ = [
    "DRAIN_LIMIT",
    "ActionQueue",
    "LoopState",
    "NuusleesApp",
    "StorageWorker",
    "default_components",
]
