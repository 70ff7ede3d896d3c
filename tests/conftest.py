"""Shared test fixtures for nuuslees tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest

from nuuslees.actions import Action
from nuuslees.components.base import Component
from nuuslees.models import (
    Feed,
    FeedConfig,
    FeedItem,
    Group,
    GroupConfig,
    UserConfig,
)
from nuuslees.storage import Database
from nuuslees.terminal import EventStream, Frame

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

_RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>{title}</title>
    <link>https://example.com/</link>
    <description>{description}</description>
    {items}
  </channel>
</rss>
"""

_RSS_ITEM_TEMPLATE = """
    <item>
      <title>{title}</title>
      {link}
      <description>{description}</description>
      {pub_date}
    </item>
"""


def make_rss(
    title: str = "Example Feed",
    description: str = "An example feed",
    items: list[dict[str, str]] | None = None,
) -> str:
    """Build an RSS 2.0 document. Item keys: title, link, description, pub_date."""
    rendered = []
    for item in items or []:
        link = item.get("link")
        pub_date = item.get("pub_date")
        rendered.append(
            _RSS_ITEM_TEMPLATE.format(
                title=item.get("title", ""),
                link=f"<link>{link}</link>" if link else "",
                description=item.get("description", ""),
                pub_date=f"<pubDate>{pub_date}</pubDate>" if pub_date else "",
            )
        )
    return _RSS_TEMPLATE.format(title=title, description=description, items="".join(rendered))


class FakeFetcher:
    """Stands in for FeedFetcher: maps url -> document text or exception."""

    def __init__(self, documents: dict[str, str | Exception]) -> None:
        self.documents = documents
        self.calls: list[str] = []

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        result = self.documents[url]
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        pass


class RecordingSink:
    """Action sink that keeps everything it is sent."""

    def __init__(self) -> None:
        self.sent: list[Action] = []

    def send(self, action: Action) -> None:
        self.sent.append(action)


class FakeTerminal:
    """Headless Terminal: frozen timer clock, frames kept in memory."""

    def __init__(self, width: int = 80, height: int = 24) -> None:
        self.events = EventStream(4.0, 10.0, clock=lambda: 0.0)
        self.width = width
        self.height = height
        self.entered = 0
        self.exited = 0
        self.suspended = 0
        self.frames: list[Frame] = []

    def enter(self) -> None:
        self.entered += 1

    def exit(self) -> None:
        self.exited += 1

    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def draw(self, paint: Callable[[Frame], None]) -> None:
        frame = Frame(self.width, self.height)
        paint(frame)
        self.frames.append(frame)

    def suspend(self) -> None:
        self.suspended += 1


class Recorder(Component):
    """Component that records every action and input event it receives."""

    def __init__(self) -> None:
        super().__init__()
        self.seen: list[Action] = []
        self.inputs: list[Any] = []
        self.draws = 0

    def handle_terminal_event(self, event: Any) -> Action | None:
        self.inputs.append(event)
        return None

    def update(self, action: Action) -> Action | None:
        self.seen.append(action)
        return None

    def draw(self, frame: Frame, area: Any) -> None:
        self.draws += 1


@pytest.fixture
def make_group() -> Callable[..., Group]:
    def _make(**overrides: Any) -> Group:
        defaults: dict[str, Any] = {"name": "Tech", "description": "Technology news"}
        defaults.update(overrides)
        return Group(**defaults)

    return _make


@pytest.fixture
def make_feed() -> Callable[..., Feed]:
    def _make(**overrides: Any) -> Feed:
        defaults: dict[str, Any] = {
            "group_id": 1,
            "name": "Example Feed",
            "source_url": "https://example.com/rss",
            "description": "An example feed",
            "last_updated": FIXED_NOW,
        }
        defaults.update(overrides)
        return Feed(**defaults)

    return _make


@pytest.fixture
def make_item() -> Callable[..., FeedItem]:
    def _make(**overrides: Any) -> FeedItem:
        defaults: dict[str, Any] = {
            "feed_id": 1,
            "title": "An article",
            "url": "https://example.com/articles/1",
            "description": "Summary",
            "published_at": FIXED_NOW,
        }
        defaults.update(overrides)
        return FeedItem(**defaults)

    return _make


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database(":memory:")
    db.open()
    yield db
    db.close()


@pytest.fixture
def sample_config() -> UserConfig:
    return UserConfig(
        groups=[
            GroupConfig(
                name="Tech",
                description="Technology news",
                feeds=[FeedConfig(link="https://example.com/tech.xml")],
            ),
        ],
        refresh_on_start=False,
    )


@pytest.fixture
def tech_rss() -> str:
    return make_rss(
        title="Tech Daily",
        description="Daily technology headlines",
        items=[
            {
                "title": "First story",
                "link": "https://example.com/tech/1",
                "description": "The first story",
                "pub_date": "Mon, 01 Jan 2024 10:00:00 GMT",
            },
            {
                "title": "Second story",
                "link": "https://example.com/tech/2",
                "description": "The second story",
                "pub_date": "Tue, 02 Jan 2024 10:00:00 GMT",
            },
        ],
    )
