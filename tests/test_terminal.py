"""Tests for layout rectangles, the frame buffer and the event stream."""

from __future__ import annotations

import asyncio

import pytest
from rich.text import Text

from nuuslees.terminal import (
    EventStream,
    Frame,
    KeyEvent,
    MouseEvent,
    MouseKind,
    Rect,
    RenderEvent,
    TickEvent,
)

# ============================================================================
# Rect
# ============================================================================


def test_split_rows_gives_status_bar_the_last_row() -> None:
    body, status = Rect(0, 0, 80, 24).split_rows(None, 1)

    assert body == Rect(0, 0, 80, 23)
    assert status == Rect(0, 23, 80, 1)


def test_split_rows_shares_leftover_between_fill_rows() -> None:
    rects = Rect(0, 0, 10, 10).split_rows(1, None, None)
    assert [r.height for r in rects] == [1, 5, 4]
    assert [r.y for r in rects] == [0, 1, 6]


def test_split_rows_never_exceeds_the_parent() -> None:
    rects = Rect(0, 0, 10, 2).split_rows(1, 3, None)
    assert [r.height for r in rects] == [1, 1, 0]


def test_split_columns_last_column_takes_remainder() -> None:
    left, right = Rect(0, 0, 81, 5).split_columns(30, 70)
    assert (left.x, left.width) == (0, 24)
    assert (right.x, right.width) == (24, 57)


def test_centered_and_inner() -> None:
    area = Rect(0, 0, 80, 24)
    assert area.centered(50, 50) == Rect(20, 6, 40, 12)
    assert area.inner() == Rect(1, 1, 78, 22)
    assert Rect(0, 0, 1, 1).inner().is_empty


def test_intersection_of_disjoint_rects_is_empty() -> None:
    assert Rect(0, 0, 5, 5).intersection(Rect(10, 10, 2, 2)).is_empty


# ============================================================================
# Frame
# ============================================================================


def test_frame_starts_blank() -> None:
    assert Frame(4, 2).plain_lines() == ["    ", "    "]


def test_render_paints_only_inside_area() -> None:
    frame = Frame(20, 3)
    frame.render("hello", Rect(2, 1, 10, 1))

    lines = frame.plain_lines()
    assert lines[0] == " " * 20
    assert lines[1] == "  hello" + " " * 13
    assert all(len(line) == 20 for line in lines)


def test_later_renders_overwrite_cells() -> None:
    frame = Frame(6, 1)
    frame.render("aaaa", Rect(0, 0, 4, 1))
    frame.render("b", Rect(1, 0, 1, 1))

    assert frame.plain_lines() == ["abaa  "]


def test_render_is_clipped_to_the_frame() -> None:
    frame = Frame(10, 1)
    frame.render(Text("overflowing", no_wrap=True), Rect(7, 0, 20, 1))
    assert frame.plain_lines() == ["       ove"]


def test_clear_blanks_an_area() -> None:
    frame = Frame(5, 1)
    frame.render("xxxxx", frame.area)
    frame.clear(Rect(1, 0, 3, 1))
    assert frame.plain_lines() == ["x   x"]


# ============================================================================
# Events
# ============================================================================


def test_key_event_name_prefers_printable_character() -> None:
    assert KeyEvent("j", "j").name == "j"
    assert KeyEvent("question_mark", "?").name == "?"
    assert KeyEvent("ctrl+c", "\x03").name == "ctrl+c"
    assert KeyEvent("down").name == "down"


@pytest.mark.asyncio
async def test_pushed_events_come_before_timers() -> None:
    stream = EventStream(4.0, 10.0, clock=lambda: 100.0)
    stream.push(KeyEvent("q", "q"))

    assert await stream.next() == KeyEvent("q", "q")
    assert await stream.next() == TickEvent()


@pytest.mark.asyncio
async def test_timers_fire_tick_then_render_and_skip_missed_deadlines() -> None:
    now = [0.0]
    stream = EventStream(4.0, 10.0, clock=lambda: now[0])
    now[0] = 0.3
    wake = asyncio.Event()

    assert await stream.next(wake) == TickEvent()
    assert await stream.next(wake) == RenderEvent()
    wake.set()
    assert await stream.next(wake) is None


@pytest.mark.asyncio
async def test_wake_interrupts_a_waiting_stream() -> None:
    stream = EventStream(1.0, 1.0, clock=lambda: 0.0)
    wake = asyncio.Event()

    waiter = asyncio.create_task(stream.next(wake))
    await asyncio.sleep(0)
    wake.set()

    assert await asyncio.wait_for(waiter, timeout=2.0) is None


@pytest.mark.asyncio
async def test_event_pushed_while_waiting_is_returned() -> None:
    stream = EventStream(1.0, 1.0, clock=lambda: 0.0)
    event = MouseEvent(MouseKind.CLICK, 3, 4)

    waiter = asyncio.create_task(stream.next())
    await asyncio.sleep(0)
    stream.push(event)

    assert await asyncio.wait_for(waiter, timeout=2.0) == event
