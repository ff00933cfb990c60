"""Tests for the logging bootstrap."""

import logging
import os
from logging.handlers import RotatingFileHandler

import pytest

from complior_tui.io import logging_setup


@pytest.fixture(autouse=True)
def clean_logger():
    logger = logging.getLogger(logging_setup.ROOT_LOGGER)
    root = logging.getLogger()
    level, propagate, root_level = logger.level, logger.propagate, root.level
    logging_setup.reset_for_tests()
    yield
    logging_setup.reset_for_tests()
    logger.setLevel(level)
    logger.propagate = propagate
    root.setLevel(root_level)
    logging.captureWarnings(False)


def test_file_only_when_stderr_disabled(tmp_path, monkeypatch):
    log_file = tmp_path / "logs" / "tui.log"
    monkeypatch.setenv("COMPLIOR_LOG_FILE", str(log_file))
    monkeypatch.setenv("COMPLIOR_LOG_LEVEL", "debug")

    runtime = logging_setup.configure(stderr=False)

    assert runtime.file_path == str(log_file)
    assert runtime.level == logging.DEBUG
    assert runtime.level_name == "DEBUG"
    handlers = logging.getLogger(logging_setup.ROOT_LOGGER).handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], RotatingFileHandler)

    logging.getLogger("complior_tui.app.controller").info("hello from the controller")
    handlers[0].flush()
    assert "hello from the controller" in log_file.read_text(encoding="utf-8")


def test_configure_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPLIOR_LOG_FILE", str(tmp_path / "a.log"))
    first = logging_setup.configure(stderr=False)
    monkeypatch.setenv("COMPLIOR_LOG_FILE", str(tmp_path / "b.log"))
    assert logging_setup.configure(stderr=True) is first
    assert logging_setup.get_runtime() is first


def test_default_path_uses_log_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("COMPLIOR_LOG_FILE", raising=False)
    monkeypatch.setenv("COMPLIOR_LOG_DIR", str(tmp_path))
    runtime = logging_setup.configure(session_name="my session!", stderr=False)
    assert runtime.file_path.startswith(str(tmp_path / "my-session-"))
    assert runtime.file_path.endswith(".log")


def test_bad_level_falls_back_to_info(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPLIOR_LOG_FILE", str(tmp_path / "x.log"))
    monkeypatch.setenv("COMPLIOR_LOG_LEVEL", "chatty")
    assert logging_setup.configure(stderr=False).level == logging.INFO


def test_stream_handler_skips_in_app_records(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPLIOR_LOG_FILE", str(tmp_path / "x.log"))
    logging_setup.configure(stderr=True)
    stream = next(
        h for h in logging.getLogger(logging_setup.ROOT_LOGGER).handlers
        if not isinstance(h, RotatingFileHandler)
    )
    record = logging.LogRecord("complior_tui", logging.INFO, __file__, 1, "m", None, None)
    assert stream.filter(record)
    record.complior_in_app = True
    assert not stream.filter(record)


def test_log_dir_follows_xdg_data_home(xdg_dirs, monkeypatch):
    monkeypatch.delenv("COMPLIOR_LOG_DIR", raising=False)
    _config, data = xdg_dirs
    assert logging_setup.log_dir() == data / "complior" / "logs"


def test_prune_keeps_newest(tmp_path):
    for i in range(5):
        path = tmp_path / f"run-{i}.log"
        path.write_text("")
        os.utime(path, (1000 + i, 1000 + i))
    (tmp_path / "notes.txt").write_text("")

    assert logging_setup.prune_run_logs(tmp_path, keep=2) == 3
    assert sorted(p.name for p in tmp_path.iterdir()) == ["notes.txt", "run-3.log", "run-4.log"]


def test_prune_missing_directory(tmp_path):
    assert logging_setup.prune_run_logs(tmp_path / "absent") == 0
