"""Tests for the SQLite storage gateway."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

import pytest

from nuuslees.errors import StorageError
from nuuslees.models import ALL_FEEDS_GROUP, ALL_ID, Group
from nuuslees.storage import Database


def test_empty_database_lists_only_the_aggregate_group(database) -> None:
    assert database.list_groups() == [ALL_FEEDS_GROUP]
    assert database.list_feeds() == []
    assert database.all_feed_items() == []


def test_upsert_group_is_keyed_on_name_and_keeps_id(database) -> None:
    first = database.upsert_group(Group(name="Tech", description="old"))
    second = database.upsert_group(Group(name="Tech", description="new"))

    assert first == second
    groups = database.list_groups()
    assert [g.name for g in groups] == ["All Feeds", "Tech"]
    assert groups[1].description == "new"
    assert groups[1].id == first


def test_groups_are_listed_in_insertion_order(database) -> None:
    for name in ("Zeta", "Alpha", "Mid"):
        database.upsert_group(Group(name=name))

    assert [g.name for g in database.list_groups()] == ["All Feeds", "Zeta", "Alpha", "Mid"]
    assert database.get_group_by_name("Alpha").name == "Alpha"
    assert database.get_group_by_name("missing") is None


def test_upsert_feed_merges_on_url(database, make_feed) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    feed_id = database.upsert_feed(make_feed(group_id=group_id, name="Old name"))
    again = database.upsert_feed(
        make_feed(group_id=group_id, name="New name", description="Fresh")
    )

    assert feed_id == again
    stored = database.get_feed(feed_id)
    assert stored.name == "New name"
    assert stored.description == "Fresh"
    assert len(database.list_feeds()) == 1


def test_feed_listing_for_group_starts_with_synthetic_aggregate(database, make_feed) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    other_id = database.upsert_group(Group(name="Other"))
    database.upsert_feed(make_feed(group_id=group_id, source_url="https://a.example/rss"))
    database.upsert_feed(make_feed(group_id=other_id, source_url="https://b.example/rss"))

    feeds = database.list_feeds_for_group(group_id)

    assert feeds[0].id == ALL_ID
    assert feeds[0].group_id == group_id
    assert feeds[0].name == "All Feeds"
    assert [f.source_url for f in feeds[1:]] == ["https://a.example/rss"]


def test_upsert_feed_item_is_idempotent(database, make_feed, make_item) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    feed_id = database.upsert_feed(make_feed(group_id=group_id))
    item = make_item(feed_id=feed_id)

    first = database.upsert_feed_item(item)
    second = database.upsert_feed_item(item)

    assert first == second
    assert len(database.feed_items_for_feed(feed_id)) == 1


def test_upsert_feed_item_keeps_extracted_content_and_read_flag(
    database, make_feed, make_item
) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    feed_id = database.upsert_feed(make_feed(group_id=group_id))
    item_id = database.upsert_feed_item(make_item(feed_id=feed_id))
    database.set_item_content(item_id, "<p>Body</p>")
    database.mark_item_read(item_id)

    database.upsert_feed_item(make_item(feed_id=feed_id, title="Retitled"))

    [stored] = database.feed_items_for_feed(feed_id)
    assert stored.title == "Retitled"
    assert stored.content == "<p>Body</p>"
    assert stored.read is True


def test_feed_items_are_newest_first(database, make_feed, make_item) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    feed_id = database.upsert_feed(make_feed(group_id=group_id))
    for day in (3, 1, 2):
        database.upsert_feed_item(
            make_item(
                feed_id=feed_id,
                url=f"https://example.com/{day}",
                title=f"day {day}",
                published_at=datetime(2024, 1, day, tzinfo=UTC),
            )
        )

    titles = [item.title for item in database.feed_items_for_feed(feed_id)]
    assert titles == ["day 3", "day 2", "day 1"]


def test_published_at_round_trips_as_aware_utc(database, make_feed, make_item) -> None:
    group_id = database.upsert_group(Group(name="Tech"))
    feed_id = database.upsert_feed(make_feed(group_id=group_id))
    published = datetime(2024, 2, 29, 8, 30, 15, tzinfo=UTC)
    database.upsert_feed_item(make_item(feed_id=feed_id, published_at=published))

    [stored] = database.all_feed_items()
    assert stored.published_at == published
    assert stored.published_at.tzinfo is not None


def test_feed_items_for_group_spans_its_feeds_only(database, make_feed, make_item) -> None:
    tech = database.upsert_group(Group(name="Tech"))
    news = database.upsert_group(Group(name="News"))
    tech_feed = database.upsert_feed(make_feed(group_id=tech, source_url="https://t/rss"))
    news_feed = database.upsert_feed(make_feed(group_id=news, source_url="https://n/rss"))
    database.upsert_feed_item(make_item(feed_id=tech_feed, url="https://t/1"))
    database.upsert_feed_item(make_item(feed_id=news_feed, url="https://n/1"))

    assert [i.url for i in database.feed_items_for_group(tech)] == ["https://t/1"]
    assert len(database.all_feed_items()) == 2


def test_group_stats_count_read_items_with_aggregate_first(
    database, make_feed, make_item
) -> None:
    tech = database.upsert_group(Group(name="Tech"))
    empty = database.upsert_group(Group(name="Empty"))
    feed_id = database.upsert_feed(make_feed(group_id=tech))
    first = database.upsert_feed_item(make_item(feed_id=feed_id, url="https://e/1"))
    database.upsert_feed_item(make_item(feed_id=feed_id, url="https://e/2"))
    database.mark_item_read(first)

    stats = database.group_stats()

    assert stats[0].group_id == ALL_ID
    assert (stats[0].read, stats[0].total) == (1, 2)
    by_group = {s.group_id: (s.read, s.total) for s in stats[1:]}
    assert by_group == {tech: (1, 2), empty: (0, 0)}


def test_feed_with_unknown_group_violates_foreign_key(database, make_feed) -> None:
    with pytest.raises(StorageError):
        database.upsert_feed(make_feed(group_id=999))


def test_item_with_unknown_feed_violates_foreign_key(database, make_item) -> None:
    with pytest.raises(StorageError):
        database.upsert_feed_item(make_item(feed_id=999))


def test_queries_on_closed_database_raise_storage_error() -> None:
    db = Database(":memory:")
    with pytest.raises(StorageError, match="not open"):
        db.list_groups()


def test_open_fails_with_storage_error_when_parent_is_a_file(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(StorageError):
        Database(blocker / "nuuslees.db").open()


def test_file_database_persists_across_connections(tmp_path, make_feed) -> None:
    path = tmp_path / "data" / "nuuslees.db"
    with Database(path) as db:
        group_id = db.upsert_group(Group(name="Tech"))
        db.upsert_feed(make_feed(group_id=group_id))

    with Database(path) as db:
        assert [g.name for g in db.list_groups()] == ["All Feeds", "Tech"]
        assert db.list_feeds()[0].group_id == group_id


def test_moving_a_feed_to_another_group_follows_the_config(database, make_feed) -> None:
    tech = database.upsert_group(Group(name="Tech"))
    news = database.upsert_group(Group(name="News"))
    feed = make_feed(group_id=tech)
    feed_id = database.upsert_feed(feed)

    database.upsert_feed(replace(feed, group_id=news))

    assert database.get_feed(feed_id).group_id == news
    assert [f.id for f in database.list_feeds_for_group(tech)] == [ALL_ID]
