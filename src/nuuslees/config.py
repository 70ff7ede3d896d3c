"""Configuration loading: groups, feeds and runtime settings."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir, user_data_dir

from nuuslees.errors import ConfigError
from nuuslees.models import (
    CONFIG_APP_NAME,
    DEFAULT_FRAME_RATE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TICK_RATE,
    FeedConfig,
    GroupConfig,
    UserConfig,
)
from nuuslees.storage import DB_FILENAME

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration file
# ============================================================================
#
# Validation contract for _dict_to_config():
#
#   Field                  Rule                              On violation
#   ─────────────────────  ────────────────────────────────  ────────────
#   groups                 list of objects                   ConfigError
#   groups[].name          non-empty string                  ConfigError
#   groups[].feeds[].link  non-empty string                  ConfigError
#   optional strings       type-checked via _safe_get()      default
#   scalar settings        type-checked via _safe_get()      default
#   tick_rate/frame_rate   clamped to [MIN_RATE, MAX_RATE]   UserConfig
#
CONFIG_FILENAME = "config.json"
LOG_FILENAME = "debug.log"

CONFIG_PATH_ENV = "NUUSLEES_CONFIG_PATH"
DB_PATH_ENV = "NUUSLEES_DB_PATH"


def get_config_path() -> Path:
    """Location of config.json.

    ``$NUUSLEES_CONFIG_PATH`` wins; otherwise platformdirs decides:
    - Linux: ~/.config/nuuslees/config.json
    - macOS: ~/Library/Application Support/nuuslees/config.json
    - Windows: %APPDATA%/nuuslees/config.json
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(CONFIG_APP_NAME)) / CONFIG_FILENAME


def get_data_dir() -> Path:
    return Path(user_data_dir(CONFIG_APP_NAME))


def get_db_path() -> Path:
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return get_data_dir() / DB_FILENAME


def get_log_path() -> Path:
    return Path(user_config_dir(CONFIG_APP_NAME)) / LOG_FILENAME


def _safe_get(data: dict, key: str, default: Any, expected_type: type | tuple[type, ...]) -> Any:
    """Return data[key] when it has the expected type, else ``default``.

    ``bool`` values only pass when ``bool`` itself is expected, since bool is
    a subclass of int.
    """
    value = data.get(key, default)
    if isinstance(value, bool) and bool not in _as_tuple(expected_type):
        return default
    if not isinstance(value, expected_type):
        return default
    return value


def _as_tuple(expected_type: type | tuple[type, ...]) -> tuple[type, ...]:
    return expected_type if isinstance(expected_type, tuple) else (expected_type,)


def _required_str(data: dict, key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}: '{key}' must be a non-empty string")
    return value.strip()


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _parse_feeds(raw: Any, where: str) -> list[FeedConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"{where}: 'feeds' must be a list")
    feeds = []
    for position, entry in enumerate(raw):
        feed_where = f"{where}.feeds[{position}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{feed_where}: expected an object")
        feeds.append(
            FeedConfig(
                link=_required_str(entry, "link", feed_where),
                name=_optional_str(entry, "name"),
                description=_optional_str(entry, "desc"),
            )
        )
    return feeds


def _parse_groups(raw: Any) -> list[GroupConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("'groups' must be a list")
    groups = []
    for position, entry in enumerate(raw):
        where = f"groups[{position}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where}: expected an object")
        groups.append(
            GroupConfig(
                name=_required_str(entry, "name", where),
                description=_safe_get(entry, "desc", "", str),
                feeds=_parse_feeds(entry.get("feeds"), where),
            )
        )
    return groups


def _dict_to_config(data: dict[str, Any]) -> UserConfig:
    """Build a UserConfig from parsed JSON, validating structure and scalar types."""
    if not isinstance(data, dict):
        raise ConfigError("Top level must be a JSON object")
    return UserConfig(
        groups=_parse_groups(data.get("groups")),
        confirm_quit=_safe_get(data, "confirm_quit", True, bool),
        tick_rate=float(_safe_get(data, "tick_rate", DEFAULT_TICK_RATE, (int, float))),
        frame_rate=float(_safe_get(data, "frame_rate", DEFAULT_FRAME_RATE, (int, float))),
        refresh_on_start=_safe_get(data, "refresh_on_start", True, bool),
        request_timeout=float(
            _safe_get(data, "request_timeout", DEFAULT_REQUEST_TIMEOUT, (int, float))
        ),
    )


def _config_to_dict(config: UserConfig) -> dict[str, Any]:
    """Inverse of _dict_to_config; feed fields left unset are omitted."""
    return {
        "confirm_quit": config.confirm_quit,
        "refresh_on_start": config.refresh_on_start,
        "tick_rate": config.tick_rate,
        "frame_rate": config.frame_rate,
        "request_timeout": config.request_timeout,
        "groups": [
            {
                "name": group.name,
                "desc": group.description,
                "feeds": [
                    {
                        key: value
                        for key, value in (
                            ("name", feed.name),
                            ("desc", feed.description),
                            ("link", feed.link),
                        )
                        if value is not None
                    }
                    for feed in group.feeds
                ],
            }
            for group in config.groups
        ],
    }


def load_config(path: Path | None = None) -> UserConfig:
    """Read and validate the JSON config file.

    A missing file yields the defaults (no groups). An unreadable or
    malformed file raises ConfigError.
    """
    config_path = path if path is not None else get_config_path()

    if not config_path.exists():
        logger.warning("No configuration file found at %s; using defaults", config_path)
        return UserConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path} has invalid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e
    config = _dict_to_config(data)
    logger.debug("Loaded %d groups from %s", len(config.groups), config_path)
    return config


def save_config(config: UserConfig, path: Path | None = None) -> bool:
    """Write the config as JSON without ever leaving a partial file.

    Uses write-to-tempfile + os.replace() so an interrupted write never
    leaves a truncated config behind. Returns True on success.
    """
    config_path = path if path is not None else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        json_str = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Could not write %s: %s", config_path, e)
        return False


def sample_config() -> UserConfig:
    """A starter configuration written by ``--init-config``."""
    return UserConfig(
        groups=[
            GroupConfig(
                name="News",
                description="General news",
                feeds=[
                    FeedConfig(link="https://feeds.bbci.co.uk/news/rss.xml"),
                ],
            ),
            GroupConfig(
                name="Tech",
                description="Technology",
                feeds=[
                    FeedConfig(link="https://hnrss.org/frontpage", name="Hacker News"),
                    FeedConfig(link="https://lwn.net/headlines/rss"),
                ],
            ),
        ]
    )


__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_PATH_ENV",
    "DB_PATH_ENV",
    "get_config_path",
    "get_data_dir",
    "get_db_path",
    "get_log_path",
    "load_config",
    "sample_config",
    "save_config",
]
