"""Feed synchronization: fetch configured feeds and merge them into storage.

``Synchronizer.sync`` never fails as a whole. A group whose row cannot be
upserted is skipped entirely, a feed that fails to fetch or parse is skipped
on its own, and a single bad entry only costs that entry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser
import httpx

from nuuslees.errors import FormatError, NetworkError, StorageError
from nuuslees.models import (
    APP_VERSION,
    DEFAULT_REQUEST_TIMEOUT,
    Feed,
    FeedConfig,
    FeedItem,
    Group,
    GroupConfig,
    UserConfig,
    utc_now,
)
from nuuslees.storage import Database

logger = logging.getLogger(__name__)

USER_AGENT = f"nuuslees/{APP_VERSION} (RSS reader)"

_DATE_FIELDS = ("published", "updated", "created")


@dataclass(slots=True)
class SyncReport:
    """Counters describing one synchronization run."""

    groups: int = 0
    feeds: int = 0
    items: int = 0
    failed_groups: list[str] = field(default_factory=list)
    failed_feeds: list[str] = field(default_factory=list)
    failed_items: int = 0

    @property
    def ok(self) -> bool:
        return not (self.failed_groups or self.failed_feeds or self.failed_items)

    def summary(self) -> str:
        text = f"Synced {self.feeds} feeds, {self.items} articles"
        failures = len(self.failed_groups) + len(self.failed_feeds)
        if failures:
            text += f" ({failures} failed)"
        return text


class FeedFetcher:
    """Blocking HTTP fetcher for feed documents."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )

    def fetch(self, url: str) -> str:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(url, str(exc) or type(exc).__name__) from exc
        return response.text

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def parse_feed_document(text: str) -> Any:
    """Parse an RSS/Atom document; raises FormatError when nothing usable is found."""
    document = feedparser.parse(text)
    if document.bozo and not document.entries:
        raise FormatError(f"Malformed feed document: {document.get('bozo_exception')}")
    if not document.entries and not document.feed:
        raise FormatError("Document is not an RSS or Atom feed")
    return document


def entry_published_at(entry: Any, now: datetime) -> datetime:
    """Return an entry's publication time, falling back to ``now``."""
    for name in _DATE_FIELDS:
        parsed = entry.get(f"{name}_parsed")
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=UTC)
            except (TypeError, ValueError):
                pass
        raw = entry.get(name)
        if not raw:
            continue
        try:
            value = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            try:
                value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except (AttributeError, ValueError):
                continue
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return now


def _entry_description(entry: Any) -> str:
    return (entry.get("summary") or entry.get("description") or "").strip()


class Synchronizer:
    """Walks the configured groups and feeds and upserts what it fetches."""

    def __init__(
        self,
        database: Database,
        fetcher: FeedFetcher,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._database = database
        self._fetcher = fetcher
        self._clock = clock

    def sync(self, config: UserConfig) -> SyncReport:
        report = SyncReport()
        for group_config in config.groups:
            group = Group(name=group_config.name, description=group_config.description)
            try:
                group_id = self._database.upsert_group(group)
            except StorageError:
                logger.error("Skipping group %r: upsert failed", group.name, exc_info=True)
                report.failed_groups.append(group.name)
                continue
            report.groups += 1
            self._sync_group(group_id, group_config, report)
        logger.info("%s", report.summary())
        return report

    def _sync_group(self, group_id: int, group_config: GroupConfig, report: SyncReport) -> None:
        for feed_config in group_config.feeds:
            try:
                stored, failed = self._sync_feed(group_id, feed_config)
            except (NetworkError, FormatError, StorageError):
                logger.error("Skipping feed %s", feed_config.link, exc_info=True)
                report.failed_feeds.append(feed_config.link)
                continue
            report.feeds += 1
            report.items += stored
            report.failed_items += failed

    def _sync_feed(self, group_id: int, feed_config: FeedConfig) -> tuple[int, int]:
        logger.debug("Fetching %s", feed_config.link)
        document = parse_feed_document(self._fetcher.fetch(feed_config.link))
        channel = document.feed
        now = self._clock()
        feed = Feed(
            group_id=group_id,
            name=feed_config.name or channel.get("title") or feed_config.link,
            description=(
                feed_config.description
                if feed_config.description is not None
                else channel.get("subtitle") or channel.get("description") or ""
            ),
            source_url=feed_config.link,
            last_updated=now,
        )
        feed_id = self._database.upsert_feed(feed)

        stored = failed = 0
        for entry in document.entries:
            link = (entry.get("link") or "").strip()
            if not link:
                logger.warning("Skipping entry without link in %s", feed_config.link)
                failed += 1
                continue
            item = FeedItem(
                feed_id=feed_id,
                title=(entry.get("title") or "").strip() or link,
                url=link,
                description=_entry_description(entry),
                published_at=entry_published_at(entry, now),
            )
            try:
                self._database.upsert_feed_item(item)
            except StorageError:
                logger.warning("Failed to store entry %s", link, exc_info=True)
                failed += 1
                continue
            stored += 1
        return stored, failed


__all__ = [
    "USER_AGENT",
    "FeedFetcher",
    "SyncReport",
    "Synchronizer",
    "entry_published_at",
    "parse_feed_document",
]
