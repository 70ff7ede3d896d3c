"""Tests for the command-line entry point."""

from __future__ import annotations

import logging
import logging.handlers
import runpy
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nuuslees.cli import _configure_logging, main
from nuuslees.config import CONFIG_PATH_ENV, DB_PATH_ENV, load_config
from nuuslees.errors import ConfigError, StorageError
from nuuslees.models import APP_VERSION, UserConfig
from nuuslees.storage import Database


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "config.json"))
    monkeypatch.setenv(DB_PATH_ENV, str(tmp_path / "nuuslees.db"))


def _main(argv: list[str], **overrides):
    kwargs = {
        "load_config_fn": lambda path: UserConfig(),
        "configure_logging_fn": lambda debug: None,
        "validate_interactive_tty_fn": lambda: True,
        "database_factory": lambda path: MagicMock(spec=Database),
        "run_fn": lambda config, database: 0,
    }
    kwargs.update(overrides)
    return main(argv, **kwargs)


def test_version_flag_prints_version(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _main(["--version"])

    assert excinfo.value.code == 0
    assert APP_VERSION in capsys.readouterr().out


def test_config_error_exits_with_1(capsys) -> None:
    def broken(path: Path) -> UserConfig:
        raise ConfigError("groups[0]: 'name' must be a non-empty string")

    assert _main([], load_config_fn=broken) == 1

    err = capsys.readouterr().err
    assert "Could not load the configuration." in err
    assert "--init-config" in err


def test_non_interactive_terminal_exits_with_2(capsys) -> None:
    run = MagicMock()

    assert _main([], validate_interactive_tty_fn=lambda: False, run_fn=run) == 2

    run.assert_not_called()
    assert "interactive TTY" in capsys.readouterr().err


def test_storage_error_on_open_exits_with_1(capsys) -> None:
    database = MagicMock(spec=Database)
    database.open.side_effect = StorageError("unable to open database file")

    assert _main([], database_factory=lambda path: database) == 1

    assert "Could not open the article database." in capsys.readouterr().err


def test_happy_path_runs_tui_and_closes_database(tmp_path: Path) -> None:
    database = MagicMock(spec=Database)
    paths: list[Path] = []
    run = MagicMock(return_value=0)

    def factory(path: Path) -> Database:
        paths.append(path)
        return database

    assert _main([], database_factory=factory, run_fn=run) == 0

    assert paths == [tmp_path / "nuuslees.db"]
    database.open.assert_called_once_with()
    run.assert_called_once()
    database.close.assert_called_once_with()


def test_database_is_closed_when_the_tui_crashes() -> None:
    database = MagicMock(spec=Database)

    def crash(config, db):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        _main([], database_factory=lambda path: database, run_fn=crash)

    database.close.assert_called_once_with()


def test_config_flag_overrides_default_path(tmp_path: Path) -> None:
    seen: list[Path] = []

    def loader(path: Path) -> UserConfig:
        seen.append(path)
        return UserConfig()

    _main(["--config", str(tmp_path / "other.json")], load_config_fn=loader)

    assert seen == [tmp_path / "other.json"]


def test_init_config_writes_sample_once(tmp_path: Path, capsys) -> None:
    target = tmp_path / "config.json"

    assert _main(["--init-config"]) == 0
    assert [g.name for g in load_config(target).groups] == ["News", "Tech"]
    target.write_text('{"groups": []}', encoding="utf-8")

    assert _main(["--init-config"]) == 0

    assert target.read_text(encoding="utf-8") == '{"groups": []}'
    assert "already exists" in capsys.readouterr().out


def test_init_config_reports_unwritable_path(tmp_path: Path, capsys) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    assert _main(["--init-config", "--config", str(blocker / "config.json")]) == 1
    assert "Could not write the sample configuration." in capsys.readouterr().err


def test_configure_logging_disabled_without_debug() -> None:
    try:
        _configure_logging(debug=False)
        assert logging.root.manager.disable >= logging.CRITICAL
    finally:
        logging.disable(logging.NOTSET)


def test_configure_logging_adds_rotating_file_handler(tmp_path: Path) -> None:
    logging.disable(logging.NOTSET)
    before = list(logging.root.handlers)
    log_file = tmp_path / "logs" / "debug.log"

    with patch("nuuslees.cli.get_log_path", return_value=log_file):
        _configure_logging(debug=True)

    try:
        added = [h for h in logging.root.handlers if h not in before]
        assert len(added) == 1
        assert isinstance(added[0], logging.handlers.RotatingFileHandler)
        assert added[0].baseFilename == str(log_file)
        assert logging.root.level == logging.DEBUG
    finally:
        for handler in logging.root.handlers[:]:
            if handler not in before:
                logging.root.removeHandler(handler)
                handler.close()
        logging.root.setLevel(logging.WARNING)


def test_main_module_calls_sys_exit_with_main_return_value() -> None:
    with (
        patch("nuuslees.cli.main", return_value=7) as main_mock,
        patch("sys.exit", side_effect=SystemExit) as exit_mock,
        pytest.raises(SystemExit),
    ):
        runpy.run_module("nuuslees.__main__", run_name="__main__")

    main_mock.assert_called_once_with()
    exit_mock.assert_called_once_with(7)
