"""Data models and constants for the nuuslees feed reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

# Application identity used for the platformdirs paths
CONFIG_APP_NAME = "nuuslees"
APP_VERSION = "0.1.0"

# Row id of an entity that has not been persisted yet
UNBORN_ID = 0

# Reserved id for the synthetic "All Feeds" aggregates. SQLite rowids start
# at 1, so a negative id can never collide with a persisted row.
ALL_ID = -1
ALL_FEEDS_NAME = "All Feeds"

# Loop timing defaults (events per second)
DEFAULT_TICK_RATE = 4.0
DEFAULT_FRAME_RATE = 10.0
MIN_RATE = 0.5
MAX_RATE = 60.0

DEFAULT_REQUEST_TIMEOUT = 30.0


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_rfc3339(value: datetime) -> str:
    """Serialize a datetime as an RFC-3339 string (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="seconds")


def parse_rfc3339(value: str) -> datetime:
    """Parse a stored RFC-3339 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class Group:
    """A named collection of feeds, keyed on ``name``."""

    name: str
    description: str = ""
    id: int = UNBORN_ID

    @property
    def is_aggregate(self) -> bool:
        return self.id == ALL_ID


@dataclass(frozen=True, slots=True)
class Feed:
    """A subscribed RSS/Atom source, keyed on ``source_url``."""

    group_id: int
    name: str
    source_url: str
    description: str = ""
    last_updated: datetime = field(default_factory=utc_now)
    id: int = UNBORN_ID

    @property
    def is_aggregate(self) -> bool:
        return self.id == ALL_ID


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One entry of a feed, keyed on ``url``.

    ``content`` stays empty until the article reader extracts the page body.
    """

    feed_id: int
    title: str
    url: str
    description: str = ""
    content: str = ""
    read: bool = False
    published_at: datetime = field(default_factory=utc_now)
    id: int = UNBORN_ID


@dataclass(frozen=True, slots=True)
class GroupStats:
    """Read counters for one group, shown in the group list."""

    group_id: int
    read: int = 0
    total: int = 0


ALL_FEEDS_GROUP = Group(
    id=ALL_ID,
    name=ALL_FEEDS_NAME,
    description="Every article from every group",
)


def all_feeds_feed(group_id: int) -> Feed:
    """Build the synthetic "All Feeds" entry prepended to a group's feed list."""
    return Feed(
        id=ALL_ID,
        group_id=group_id,
        name=ALL_FEEDS_NAME,
        source_url="",
        description="Every article in this group",
        last_updated=datetime.min.replace(tzinfo=UTC),
    )


# ============================================================================
# Configuration models
# ============================================================================


@dataclass(slots=True)
class FeedConfig:
    """A configured feed. ``name``/``description`` fall back to the document's own."""

    link: str
    name: str | None = None
    description: str | None = None


@dataclass(slots=True)
class GroupConfig:
    """A configured group of feeds."""

    name: str
    description: str = ""
    feeds: list[FeedConfig] = field(default_factory=list)


@dataclass(slots=True)
class UserConfig:
    """Read-only configuration snapshot handed to every component."""

    groups: list[GroupConfig] = field(default_factory=list)
    confirm_quit: bool = True
    tick_rate: float = DEFAULT_TICK_RATE
    frame_rate: float = DEFAULT_FRAME_RATE
    refresh_on_start: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        self.tick_rate = max(MIN_RATE, min(MAX_RATE, self.tick_rate))
        self.frame_rate = max(MIN_RATE, min(MAX_RATE, self.frame_rate))
