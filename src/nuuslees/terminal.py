"""Terminal driver: events, layout rectangles, the frame buffer and the Textual host.

Textual owns raw mode and input decoding. Everything it receives is
translated into the small event vocabulary below and pushed into an
``EventStream``; the dispatch loop pulls from that stream and paints whole
frames back through ``Terminal.draw``.
"""

from __future__ import annotations

import asyncio
import enum
import io
import logging
import os
import signal
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from rich.console import Console, ConsoleOptions, RenderableType, RenderResult
from rich.segment import Segment
from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.widgets import Static

logger = logging.getLogger(__name__)


# ============================================================================
# Events
# ============================================================================


class MouseKind(enum.Enum):
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    CLICK = "click"


@dataclass(frozen=True, slots=True)
class KeyEvent:
    key: str
    character: str | None = None

    @property
    def name(self) -> str:
        """The printable character when there is one, else the key name."""
        char = self.character
        if char is not None and len(char) == 1 and char.isprintable():
            return char
        return self.key


@dataclass(frozen=True, slots=True)
class MouseEvent:
    kind: MouseKind
    x: int = 0
    y: int = 0


@dataclass(frozen=True, slots=True)
class ResizeEvent:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class TickEvent:
    pass


@dataclass(frozen=True, slots=True)
class RenderEvent:
    pass


@dataclass(frozen=True, slots=True)
class QuitEvent:
    pass


@dataclass(frozen=True, slots=True)
class SuspendEvent:
    pass


@dataclass(frozen=True, slots=True)
class ResumeEvent:
    pass


Event = (
    KeyEvent
    | MouseEvent
    | ResizeEvent
    | TickEvent
    | RenderEvent
    | QuitEvent
    | SuspendEvent
    | ResumeEvent
)


# ============================================================================
# Layout
# ============================================================================


@dataclass(frozen=True, slots=True)
class Rect:
    """A rectangular region of the terminal, in cells."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersection(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))

    def split_rows(self, *heights: int | None) -> list[Rect]:
        """Split top to bottom. ``None`` entries share the rows left over."""
        fixed = sum(h for h in heights if h is not None)
        fills = sum(1 for h in heights if h is None)
        spare = max(0, self.height - fixed)
        fill_size, remainder = divmod(spare, fills) if fills else (0, 0)
        rects = []
        y = self.y
        for h in heights:
            if h is None:
                size = fill_size + (1 if remainder > 0 else 0)
                remainder -= 1
            else:
                size = h
            size = max(0, min(size, self.bottom - y))
            rects.append(Rect(self.x, y, self.width, size))
            y += size
        return rects

    def split_columns(self, *percentages: int) -> list[Rect]:
        """Split left to right by percentage; the last column takes the remainder."""
        rects = []
        x = self.x
        for i, pct in enumerate(percentages):
            if i == len(percentages) - 1:
                size = self.right - x
            else:
                size = self.width * pct // 100
            rects.append(Rect(x, self.y, max(0, size), self.height))
            x += size
        return rects

    def inner(self, horizontal: int = 1, vertical: int = 1) -> Rect:
        return Rect(
            self.x + horizontal,
            self.y + vertical,
            max(0, self.width - 2 * horizontal),
            max(0, self.height - 2 * vertical),
        )

    def centered(self, percent_x: int, percent_y: int) -> Rect:
        width = max(1, self.width * percent_x // 100)
        height = max(1, self.height * percent_y // 100)
        return Rect(
            self.x + (self.width - width) // 2,
            self.y + (self.height - height) // 2,
            width,
            height,
        )


# ============================================================================
# Frame buffer
# ============================================================================


class Frame:
    """A ``width x height`` grid of rich segments that components paint into.

    Later paints overwrite earlier ones cell-for-cell, so overlays such as
    popups are simply drawn last. A Frame is itself a rich renderable.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.area = Rect(0, 0, self.width, self.height)
        self._console = Console(
            file=io.StringIO(),
            width=max(1, self.width),
            height=max(1, self.height),
            force_terminal=True,
            color_system="truecolor",
            legacy_windows=False,
        )
        self._rows: list[list[Segment]] = [
            [Segment(" " * self.width)] for _ in range(self.height)
        ]

    def render(self, renderable: RenderableType, area: Rect) -> None:
        """Paint ``renderable`` clipped to ``area``."""
        area = area.intersection(self.area)
        if area.is_empty:
            return
        options = self._console.options.update_dimensions(area.width, area.height)
        lines = self._console.render_lines(renderable, options, pad=True)
        for offset, line in enumerate(lines[: area.height]):
            row = area.y + offset
            self._rows[row] = self._splice(self._rows[row], line, area.x, area.width)

    def clear(self, area: Rect) -> None:
        self.render("", area)

    def _splice(self, row: list[Segment], line: list[Segment], x: int, width: int) -> list[Segment]:
        line = Segment.adjust_line_length(line, width)
        left, _replaced, right = Segment.divide(row, [x, x + width, self.width])
        return [*left, *line, *right]

    def lines(self) -> list[list[Segment]]:
        return [list(row) for row in self._rows]

    def plain_lines(self) -> list[str]:
        """Return the frame as plain text, one string per row."""
        return ["".join(segment.text for segment in row) for row in self._rows]

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        new_line = Segment.line()
        for index, row in enumerate(self._rows):
            yield from row
            if index < len(self._rows) - 1:
                yield new_line


# ============================================================================
# Event stream
# ============================================================================


class EventStream:
    """Merges pushed terminal events with the periodic Tick and Render timers."""

    def __init__(
        self,
        tick_rate: float,
        frame_rate: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tick_interval = 1.0 / tick_rate
        self._render_interval = 1.0 / frame_rate
        self._clock = clock
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        now = clock()
        self._next_tick = now + self._tick_interval
        self._next_render = now + self._render_interval

    def push(self, event: Event) -> None:
        """Enqueue an event; safe to call from threads other than the loop's."""
        loop = self._loop
        if loop is not None and not _running_in(loop):
            loop.call_soon_threadsafe(self._queue.put_nowait, event)
        else:
            self._queue.put_nowait(event)

    def extend(self, events_: Iterable[Event]) -> None:
        for event in events_:
            self.push(event)

    async def next(self, wake: asyncio.Event | None = None) -> Event | None:
        """Wait for the next event or timer deadline, whichever comes first.

        Returns ``None`` when ``wake`` fired first (or a timer woke early),
        meaning there is no event but queued actions may need draining.
        """
        self._loop = asyncio.get_running_loop()
        if not self._queue.empty():
            return self._queue.get_nowait()
        due = self._due_timer_event()
        if due is not None:
            return due
        if wake is not None and wake.is_set():
            return None

        timeout = max(0.0, min(self._next_tick, self._next_render) - self._clock())
        getter = asyncio.ensure_future(self._queue.get())
        waiters: set[asyncio.Future] = {getter}
        if wake is not None:
            waiters.add(asyncio.ensure_future(wake.wait()))
        try:
            done, _pending = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
        if getter in done:
            return getter.result()
        if done:
            return None
        return self._due_timer_event()

    def _due_timer_event(self) -> Event | None:
        now = self._clock()
        if now >= self._next_tick:
            self._next_tick = _next_deadline(self._next_tick, self._tick_interval, now)
            return TickEvent()
        if now >= self._next_render:
            self._next_render = _next_deadline(self._next_render, self._render_interval, now)
            return RenderEvent()
        return None


def _next_deadline(previous: float, interval: float, now: float) -> float:
    # Missed deadlines are skipped rather than replayed in a burst
    deadline = previous + interval
    return deadline if deadline > now else now + interval


def _running_in(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


# ============================================================================
# Terminal protocol + Textual implementation
# ============================================================================


@runtime_checkable
class Terminal(Protocol):
    """What the dispatch loop needs from a terminal driver."""

    events: EventStream

    def enter(self) -> None: ...

    def exit(self) -> None: ...

    def size(self) -> tuple[int, int]: ...

    def resize(self, width: int, height: int) -> None: ...

    def draw(self, paint: Callable[[Frame], None]) -> None: ...

    def suspend(self) -> None: ...


class TextualTerminal:
    """Terminal backed by a running ``TerminalApp``."""

    def __init__(self, app: TerminalApp, events_: EventStream) -> None:
        self._app = app
        self.events = events_
        self._size: tuple[int, int] | None = None
        self.active = False

    def enter(self) -> None:
        self.active = True
        self._size = None
        self._app.refresh(layout=True)

    def exit(self) -> None:
        self.active = False

    def size(self) -> tuple[int, int]:
        if self._size is not None:
            return self._size
        return self._app.size.width, self._app.size.height

    def resize(self, width: int, height: int) -> None:
        self._size = (width, height)

    def draw(self, paint: Callable[[Frame], None]) -> None:
        width, height = self.size()
        frame = Frame(width, height)
        paint(frame)
        self._app.show_frame(frame)

    def suspend(self) -> None:
        if not hasattr(signal, "SIGTSTP"):
            logger.warning("Suspend is not supported on this platform")
            return
        try:
            with self._app.suspend():
                os.kill(os.getpid(), signal.SIGTSTP)
        except SuspendNotSupported:
            logger.warning("Suspend is not supported by this terminal driver")


class TerminalApp(App[int], inherit_bindings=False):
    """Textual host: forwards input to the event stream and displays frames."""

    CSS = """
    Screen {
        overflow: hidden;
    }

    #frame {
        width: 1fr;
        height: 1fr;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        run_loop: Callable[[Terminal], Awaitable[int]],
        *,
        tick_rate: float,
        frame_rate: float,
    ) -> None:
        super().__init__()
        self._run_loop = run_loop
        self.terminal = TextualTerminal(self, EventStream(tick_rate, frame_rate))

    def compose(self) -> ComposeResult:
        yield Static(id="frame")

    def on_mount(self) -> None:
        self.run_worker(self._drive(), name="dispatch-loop", exclusive=True)

    async def _drive(self) -> None:
        code = await self._run_loop(self.terminal)
        self.exit(code)

    def show_frame(self, frame: Frame) -> None:
        self.query_one("#frame", Static).update(frame)

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.terminal.events.push(KeyEvent(key=event.key, character=event.character))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.terminal.events.push(MouseEvent(MouseKind.SCROLL_UP, event.x, event.y))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.terminal.events.push(MouseEvent(MouseKind.SCROLL_DOWN, event.x, event.y))

    def on_click(self, event: events.Click) -> None:
        self.terminal.events.push(MouseEvent(MouseKind.CLICK, event.x, event.y))

    def on_resize(self, event: events.Resize) -> None:
        self.terminal.events.push(ResizeEvent(event.size.width, event.size.height))


__all__ = [
    "Event",
    "EventStream",
    "Frame",
    "KeyEvent",
    "MouseEvent",
    "MouseKind",
    "QuitEvent",
    "Rect",
    "RenderEvent",
    "ResizeEvent",
    "ResumeEvent",
    "SuspendEvent",
    "Terminal",
    "TerminalApp",
    "TextualTerminal",
    "TickEvent",
]
