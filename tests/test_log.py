"""Tests for logging configuration."""

import json
import logging

import pytest
import structlog

from syosetu_reader.log import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_verbosity_levels():
    configure_logging(verbosity=-1)
    assert logging.getLogger().level == logging.WARNING

    configure_logging(verbosity=1)
    assert logging.getLogger().level == logging.DEBUG

    configure_logging(verbosity=0, default_level="error")
    assert logging.getLogger().level == logging.ERROR


def test_unknown_level_falls_back_to_info():
    configure_logging(default_level="chatty")
    assert logging.getLogger().level == logging.INFO


def test_json_log_file(tmp_path):
    """The file sink records DEBUG events as JSON with readable Japanese."""
    log_file = tmp_path / "logs" / "run.jsonl"
    configure_logging(verbosity=-1, log_file=log_file)

    structlog.get_logger("test").debug("chapter_fetched", title="第一話")
    for handler in logging.getLogger().handlers:
        handler.flush()

    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert "第一話" in line
    record = json.loads(line)
    assert record["event"] == "chapter_fetched"
    assert record["level"] == "debug"


def test_unwritable_log_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(OSError):
        configure_logging(log_file=blocker / "run.jsonl")
