"""CLI/bootstrap for the nuuslees feed reader."""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from nuuslees.config import (
    get_config_path,
    get_db_path,
    get_log_path,
    load_config,
    sample_config,
    save_config,
)
from nuuslees.errors import ConfigError, StorageError
from nuuslees.models import APP_VERSION, UserConfig
from nuuslees.storage import Database

logger = logging.getLogger(__name__)


def _sentence(text: str) -> str:
    text = text.strip()
    return text if not text or text[-1] in ".!?" else f"{text}."


def _startup_error(action: str, *, why: str, next_step: str) -> str:
    """Format a startup failure for stderr along with a suggested next step."""
    return "\n".join(
        (f"Could not {action}.", f"Why: {_sentence(why)}", f"Next step: {_sentence(next_step)}")
    )


def _configure_logging(debug: bool) -> None:
    """Route log records to a rotating file under --debug; silence them otherwise."""
    if not debug:
        # The TUI owns the terminal, so nothing may go to stderr
        logging.disable(logging.CRITICAL)
        return

    log_file = get_log_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _validate_interactive_tty() -> bool:
    """The TUI needs a real terminal on both stdin and stdout."""
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def _init_config(config_path: Path) -> int:
    if config_path.exists():
        print(f"Config already exists at {config_path}; leaving it unchanged.")
        return 0
    if not save_config(sample_config(), config_path):
        print(
            _startup_error(
                "write the sample configuration",
                why=f"{config_path} is not writable",
                next_step="pass --config with a writable path",
            ),
            file=sys.stderr,
        )
        return 1
    print(f"Wrote sample config to {config_path}")
    return 0


def _run_tui(config: UserConfig, database: Database) -> int:
    from nuuslees.app import NuusleesApp
    from nuuslees.extract import ArticleExtractor
    from nuuslees.sync import FeedFetcher, Synchronizer
    from nuuslees.terminal import TerminalApp

    fetcher = FeedFetcher(timeout=config.request_timeout)
    extractor = ArticleExtractor(timeout=config.request_timeout)
    try:
        runtime = NuusleesApp(config, database, Synchronizer(database, fetcher), extractor)
        app = TerminalApp(runtime.run, tick_rate=config.tick_rate, frame_rate=config.frame_rate)
        code = app.run()
    finally:
        fetcher.close()
        extractor.close()
    return code if isinstance(code, int) else 0


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[Path], UserConfig] = load_config,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    validate_interactive_tty_fn: Callable[[], bool] = _validate_interactive_tty,
    database_factory: Callable[[Path], Database] = Database,
    run_fn: Callable[[UserConfig, Database], Any] = _run_tui,
) -> int:
    """Parse arguments, load config, open storage and run the TUI; returns the exit code."""
    parser = argparse.ArgumentParser(description="Read RSS and Atom feeds in the terminal")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON config file (default: platform config dir)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a sample config file if none exists, then exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/nuuslees/debug.log)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    args = parser.parse_args(argv)

    configure_logging_fn(args.debug)
    logger.debug("nuuslees %s starting", APP_VERSION)

    config_path = args.config if args.config is not None else get_config_path()
    if args.init_config:
        return _init_config(config_path)

    try:
        config = load_config_fn(config_path)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        print(
            _startup_error(
                "load the configuration",
                why=str(exc),
                next_step=f"fix {config_path} or run nuuslees --init-config",
            ),
            file=sys.stderr,
        )
        return 1

    if not validate_interactive_tty_fn():
        print("Error: nuuslees requires an interactive TTY.", file=sys.stderr)
        print("Next steps:", file=sys.stderr)
        print("  - Run nuuslees directly in a terminal session", file=sys.stderr)
        print("  - Use --init-config or --version for non-interactive output", file=sys.stderr)
        return 2

    database = database_factory(get_db_path())
    try:
        database.open()
    except StorageError as exc:
        logger.error("Storage error: %s", exc)
        print(
            _startup_error(
                "open the article database",
                why=str(exc),
                next_step="check permissions on the data directory or set NUUSLEES_DB_PATH",
            ),
            file=sys.stderr,
        )
        return 1

    try:
        code = run_fn(config, database)
    finally:
        database.close()
    return code if isinstance(code, int) else 0


__all__ = [
    "_configure_logging",
    "_validate_interactive_tty",
    "main",
]
