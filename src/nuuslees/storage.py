"""SQLite storage gateway for groups, feeds and feed items.

Every write is an upsert keyed on the entity's natural key (group name, feed
url, item url), so re-running a sync over the same documents is idempotent
and preserves row ids.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from nuuslees.errors import StorageError
from nuuslees.models import (
    ALL_FEEDS_GROUP,
    Feed,
    FeedItem,
    Group,
    GroupStats,
    all_feeds_feed,
    parse_rfc3339,
    to_rfc3339,
)

logger = logging.getLogger(__name__)

DB_FILENAME = "nuuslees.db"

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS groups ("
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
    "  name TEXT NOT NULL UNIQUE,"
    '  "desc" TEXT NOT NULL DEFAULT \'\''
    ")",
    "CREATE TABLE IF NOT EXISTS feeds ("
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
    "  group_id INTEGER NOT NULL REFERENCES groups(id),"
    "  name TEXT NOT NULL,"
    '  "desc" TEXT NOT NULL DEFAULT \'\','
    "  url TEXT NOT NULL UNIQUE,"
    "  updated_at TEXT NOT NULL"
    ")",
    "CREATE TABLE IF NOT EXISTS feed_items ("
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
    "  feed_id INTEGER NOT NULL REFERENCES feeds(id),"
    "  title TEXT NOT NULL,"
    "  url TEXT NOT NULL UNIQUE,"
    '  "desc" TEXT NOT NULL DEFAULT \'\','
    "  content TEXT NOT NULL DEFAULT '',"
    "  read INTEGER NOT NULL DEFAULT 0,"
    "  pub_date TEXT NOT NULL"
    ")",
    "CREATE INDEX IF NOT EXISTS idx_feeds_group_id ON feeds(group_id)",
    "CREATE INDEX IF NOT EXISTS idx_feed_items_feed_id ON feed_items(feed_id)",
)

_FEED_COLUMNS = 'id, group_id, name, "desc", url, updated_at'
_ITEM_COLUMNS = (
    "feed_items.id, feed_items.feed_id, feed_items.title, feed_items.url, "
    'feed_items."desc", feed_items.content, feed_items.read, feed_items.pub_date'
)
_ITEM_ORDER = "ORDER BY feed_items.pub_date DESC, feed_items.id DESC"


def _row_to_group(row: sqlite3.Row) -> Group:
    return Group(id=row["id"], name=row["name"], description=row["desc"])


def _row_to_feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=row["id"],
        group_id=row["group_id"],
        name=row["name"],
        description=row["desc"],
        source_url=row["url"],
        last_updated=parse_rfc3339(row["updated_at"]),
    )


def _row_to_item(row: sqlite3.Row) -> FeedItem:
    return FeedItem(
        id=row["id"],
        feed_id=row["feed_id"],
        title=row["title"],
        url=row["url"],
        description=row["desc"],
        content=row["content"],
        read=bool(row["read"]),
        published_at=parse_rfc3339(row["pub_date"]),
    )


class Database:
    """Owns one SQLite connection.

    The connection is opened on the startup thread and afterwards only used
    from the storage worker thread, never concurrently.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> Database:
        self.open()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Connect, enable foreign keys and create the schema."""
        if self._conn is not None:
            return
        target = str(self.path)
        try:
            if target != ":memory:":
                Path(target).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(target, check_same_thread=False)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot open database at {target}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        self._conn = conn
        try:
            self.init_schema()
        except StorageError:
            self.close()
            raise
        logger.debug("Opened database %s", target)

    def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is not None:
            conn.close()

    def init_schema(self) -> None:
        with self._transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        if self._conn is None:
            raise StorageError("Database is not open")
        try:
            with self._conn as conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._transaction() as conn:
            return conn.execute(sql, params).fetchall()

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------

    def upsert_group(self, group: Group) -> int:
        """Insert or update a group keyed on name; returns the stable row id."""
        with self._transaction() as conn:
            conn.execute(
                'INSERT INTO groups (name, "desc") VALUES (?, ?) '
                'ON CONFLICT(name) DO UPDATE SET "desc" = excluded."desc"',
                (group.name, group.description),
            )
            row = conn.execute("SELECT id FROM groups WHERE name = ?", (group.name,)).fetchone()
        return int(row["id"])

    def upsert_feed(self, feed: Feed) -> int:
        """Insert or update a feed keyed on url; returns the stable row id."""
        with self._transaction() as conn:
            conn.execute(
                'INSERT INTO feeds (group_id, name, "desc", url, updated_at) '
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(url) DO UPDATE SET "
                "  group_id = excluded.group_id,"
                "  name = excluded.name,"
                '  "desc" = excluded."desc",'
                "  updated_at = excluded.updated_at",
                (
                    feed.group_id,
                    feed.name,
                    feed.description,
                    feed.source_url,
                    to_rfc3339(feed.last_updated),
                ),
            )
            row = conn.execute("SELECT id FROM feeds WHERE url = ?", (feed.source_url,)).fetchone()
        return int(row["id"])

    def upsert_feed_item(self, item: FeedItem) -> int:
        """Insert or merge a feed item keyed on url; returns the stable row id.

        Extracted content is kept when the incoming item has none, and an
        item once read stays read.
        """
        with self._transaction() as conn:
            conn.execute(
                'INSERT INTO feed_items (feed_id, title, url, "desc", content, read, pub_date) '
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(url) DO UPDATE SET "
                "  title = excluded.title,"
                '  "desc" = excluded."desc",'
                "  content = CASE WHEN excluded.content != '' "
                "    THEN excluded.content ELSE feed_items.content END,"
                "  read = MAX(feed_items.read, excluded.read),"
                "  pub_date = excluded.pub_date",
                (
                    item.feed_id,
                    item.title,
                    item.url,
                    item.description,
                    item.content,
                    int(item.read),
                    to_rfc3339(item.published_at),
                ),
            )
            row = conn.execute("SELECT id FROM feed_items WHERE url = ?", (item.url,)).fetchone()
        return int(row["id"])

    def set_item_content(self, item_id: int, content: str) -> None:
        with self._transaction() as conn:
            conn.execute("UPDATE feed_items SET content = ? WHERE id = ?", (content, item_id))

    def mark_item_read(self, item_id: int, read: bool = True) -> None:
        with self._transaction() as conn:
            conn.execute("UPDATE feed_items SET read = ? WHERE id = ?", (int(read), item_id))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_groups(self) -> list[Group]:
        """Return the synthetic "All Feeds" group followed by groups in insertion order."""
        rows = self._query('SELECT id, name, "desc" FROM groups ORDER BY id')
        return [ALL_FEEDS_GROUP, *(_row_to_group(row) for row in rows)]

    def get_group_by_name(self, name: str) -> Group | None:
        rows = self._query('SELECT id, name, "desc" FROM groups WHERE name = ?', (name,))
        return _row_to_group(rows[0]) if rows else None

    def list_feeds(self) -> list[Feed]:
        rows = self._query(f"SELECT {_FEED_COLUMNS} FROM feeds ORDER BY id")
        return [_row_to_feed(row) for row in rows]

    def list_feeds_for_group(self, group_id: int) -> list[Feed]:
        """Return the synthetic "All Feeds" feed followed by the group's feeds."""
        rows = self._query(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "WHERE group_id = ? ORDER BY id",
            (group_id,),
        )
        return [all_feeds_feed(group_id), *(_row_to_feed(row) for row in rows)]

    def get_feed(self, feed_id: int) -> Feed | None:
        rows = self._query(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?",
            (feed_id,),
        )
        return _row_to_feed(rows[0]) if rows else None

    def feed_items_for_feed(self, feed_id: int) -> list[FeedItem]:
        rows = self._query(
            f"SELECT {_ITEM_COLUMNS} FROM feed_items WHERE feed_id = ? {_ITEM_ORDER}",
            (feed_id,),
        )
        return [_row_to_item(row) for row in rows]

    def feed_items_for_group(self, group_id: int) -> list[FeedItem]:
        rows = self._query(
            f"SELECT {_ITEM_COLUMNS} FROM feed_items "
            "JOIN feeds ON feed_items.feed_id = feeds.id "
            f"WHERE feeds.group_id = ? {_ITEM_ORDER}",
            (group_id,),
        )
        return [_row_to_item(row) for row in rows]

    def all_feed_items(self) -> list[FeedItem]:
        rows = self._query(f"SELECT {_ITEM_COLUMNS} FROM feed_items {_ITEM_ORDER}")
        return [_row_to_item(row) for row in rows]

    def group_stats(self) -> list[GroupStats]:
        """Return read/total item counters per group, with the aggregate first."""
        rows = self._query(
            "SELECT groups.id AS group_id,"
            "  COALESCE(SUM(feed_items.read), 0) AS read_count,"
            "  COUNT(feed_items.id) AS total "
            "FROM groups "
            "LEFT JOIN feeds ON feeds.group_id = groups.id "
            "LEFT JOIN feed_items ON feed_items.feed_id = feeds.id "
            "GROUP BY groups.id ORDER BY groups.id"
        )
        stats = [
            GroupStats(group_id=row["group_id"], read=row["read_count"], total=row["total"])
            for row in rows
        ]
        aggregate = GroupStats(
            group_id=ALL_FEEDS_GROUP.id,
            read=sum(s.read for s in stats),
            total=sum(s.total for s in stats),
        )
        return [aggregate, *stats]


__all__ = [
    "DB_FILENAME",
    "Database",
]
