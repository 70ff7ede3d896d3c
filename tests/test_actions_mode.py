"""Tests for the action vocabulary and the navigation mode machine."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from nuuslees.actions import (
    ChangeTab,
    Error,
    Quit,
    Render,
    RequestUpdateFeedView,
    Tick,
    is_noisy,
    new_request_nonce,
)
from nuuslees.mode import FeedList, GroupView, ModeMachine, Refreshing, ViewArticles
from nuuslees.models import ALL_FEEDS_GROUP


def test_request_nonces_strictly_increase() -> None:
    first = new_request_nonce()
    second = new_request_nonce()
    assert second > first


def test_actions_compare_and_hash_by_value() -> None:
    a = RequestUpdateFeedView(index=1, group=ALL_FEEDS_GROUP, nonce=7)
    b = RequestUpdateFeedView(index=1, group=ALL_FEEDS_GROUP, nonce=7)

    assert a == b
    assert len({a, b}) == 1
    assert ChangeTab(1) != ChangeTab(2)
    assert Quit().name == "Quit"


def test_actions_are_immutable() -> None:
    action = Error("boom")
    with pytest.raises(FrozenInstanceError):
        action.message = "changed"  # type: ignore[misc]


def test_only_timer_actions_are_noisy() -> None:
    assert is_noisy(Tick())
    assert is_noisy(Render())
    assert not is_noisy(Quit())


def test_mode_machine_starts_in_group_view() -> None:
    machine = ModeMachine()
    assert machine.mode == GroupView()
    assert machine.accepts_input


def test_entering_the_same_mode_reports_no_change() -> None:
    machine = ModeMachine()
    assert machine.enter(FeedList())
    assert not machine.enter(FeedList())
    assert machine.mode == FeedList()


def test_view_articles_modes_differ_by_snapshot(make_item) -> None:
    machine = ModeMachine(ViewArticles(()))
    assert machine.enter(ViewArticles((make_item(),)))
    assert machine.mode.label == "ViewArticles (1)"


def test_refresh_blocks_input_and_restores_previous_mode() -> None:
    machine = ModeMachine(FeedList())

    assert machine.begin_refresh()
    assert machine.mode == Refreshing()
    assert not machine.accepts_input
    assert not machine.begin_refresh()

    assert machine.end_refresh()
    assert machine.mode == FeedList()
    assert machine.accepts_input
    assert not machine.end_refresh()


def test_tab_selection_during_refresh_is_applied_afterwards() -> None:
    machine = ModeMachine()
    machine.begin_refresh()

    assert not machine.tab_selected(FeedList())
    assert machine.mode == Refreshing()

    machine.end_refresh()
    assert machine.mode == FeedList()


def test_tab_selection_outside_refresh_switches_immediately() -> None:
    machine = ModeMachine()
    assert machine.tab_selected(FeedList())
    assert machine.mode == FeedList()
