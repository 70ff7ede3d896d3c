"""nuuslees: a terminal RSS/Atom feed reader."""

from nuuslees.errors import (
    ConfigError,
    FormatError,
    NetworkError,
    NuusleesError,
    RenderError,
    StorageError,
)
from nuuslees.models import (
    ALL_FEEDS_GROUP,
    ALL_ID,
    APP_VERSION,
    Feed,
    FeedConfig,
    FeedItem,
    Group,
    GroupConfig,
    GroupStats,
    UserConfig,
    all_feeds_feed,
)

__version__ = APP_VERSION

__all__ = [
    "ALL_FEEDS_GROUP",
    "ALL_ID",
    "APP_VERSION",
    "ConfigError",
    "Feed",
    "FeedConfig",
    "FeedItem",
    "FormatError",
    "Group",
    "GroupConfig",
    "GroupStats",
    "NetworkError",
    "NuusleesError",
    "RenderError",
    "StorageError",
    "UserConfig",
    "__version__",
    "all_feeds_feed",
]
