"""Tests for operational log configuration and the command-line entry point."""

import logging

import pytest

from dhtcatalog import cli
from dhtcatalog.core.errors import FatalSetupError
from dhtcatalog.core.logging_setup import LOG_FORMAT, configure_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_log_is_written_to_file_and_stdout(tmp_path, restore_root_logging):
    log_file = tmp_path / "logs" / "logger.log"

    logger = configure_logging(log_file, "INFO")
    logger.info("catalog ready")

    handler_types = {type(h) for h in logging.getLogger().handlers}
    assert logging.FileHandler in handler_types
    assert logging.StreamHandler in handler_types
    assert "catalog ready" in log_file.read_text()
    assert logging.getLogger().handlers[0].formatter._fmt == LOG_FORMAT


def test_log_file_is_appended(tmp_path, restore_root_logging):
    log_file = tmp_path / "logger.log"
    log_file.write_text("previous session\n")

    configure_logging(log_file).info("next session")

    content = log_file.read_text()
    assert content.startswith("previous session")
    assert "next session" in content


def test_unopenable_log_file_is_fatal(tmp_path, restore_root_logging):
    with pytest.raises(FatalSetupError):
        configure_logging(tmp_path)


def test_cli_reports_missing_configuration(tmp_path, monkeypatch, capsys, restore_root_logging):
    for name in ("DHTCATALOG_DB_HOST", "DHTCATALOG_DB_NAME", "DHTCATALOG_DB_USER"):
        monkeypatch.delenv(name, raising=False)

    status = cli.main([
        "--config", str(tmp_path / "absent.json"),
        "--log-file", str(tmp_path / "logger.log"),
        "--replay", "-",
    ])

    assert status == 1
    assert "[ERROR]" in capsys.readouterr().err
    assert "Startup failed" in (tmp_path / "logger.log").read_text()
