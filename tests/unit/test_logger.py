"""Tests for logging setup."""

import logging

import pytest

import dating_room.logger as logger_module


@pytest.fixture
def fresh_logging(monkeypatch, tmp_path):
    """Point logs at a temp dir and restore the root logger afterwards."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    monkeypatch.setattr(logger_module, "_configured", False)
    monkeypatch.setattr(logger_module.settings, "log_dir", str(tmp_path))
    monkeypatch.setattr(logger_module.settings, "log_level", "INFO")

    yield tmp_path

    for handler in root.handlers:
        handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_setup_writes_bot_and_error_logs_only(fresh_logging):
    logger_module.setup_logging()
    logging.getLogger("dating_room.test").error("boom")

    names = sorted(p.name for p in fresh_logging.iterdir())
    assert names == ["dating_room.log", "errors.log"]
    assert "boom" in (fresh_logging / "errors.log").read_text(encoding="utf-8")
    assert "[dating_room.test]" in (fresh_logging / "dating_room.log").read_text(encoding="utf-8")


def test_setup_runs_once(fresh_logging):
    logger_module.setup_logging()
    count = len(logging.getLogger().handlers)
    logger_module.setup_logging()
    assert len(logging.getLogger().handlers) == count == 3


def test_console_formatter_colours_level_and_restores_record():
    formatter = logger_module.ConsoleFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "hi", None, None)

    output = formatter.format(record)

    assert output.startswith("\033[33mWARNING\033[0m")
    assert record.levelname == "WARNING"
