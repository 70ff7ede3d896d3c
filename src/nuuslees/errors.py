"""Exception taxonomy shared by storage, sync, extraction and rendering."""

from __future__ import annotations


class NuusleesError(Exception):
    """Base class for every error raised by nuuslees itself."""


class StorageError(NuusleesError):
    """The SQLite connection or a query failed."""


class NetworkError(NuusleesError):
    """A remote document could not be fetched."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class FormatError(NuusleesError):
    """A feed or HTML document could not be parsed."""


class ConfigError(NuusleesError):
    """The configuration file is unreadable or malformed."""


class RenderError(NuusleesError):
    """A component failed to draw itself into the frame."""

    def __init__(self, component: str, reason: str) -> None:
        super().__init__(f"Failed to draw {component}: {reason}")
        self.component = component
        self.reason = reason
