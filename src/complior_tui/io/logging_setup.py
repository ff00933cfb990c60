"""Logging bootstrap for the complior TUI.

One log file per run under $XDG_DATA_HOME/complior/logs, next to the saved
sessions. The Textual screen owns the terminal, so stderr output is opt-in.

// [LAW:single-enforcer] Only configure() attaches handlers to the complior_tui logger.
// [LAW:one-source-of-truth] The chosen file and level are returned as LoggingRuntime.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "complior_tui"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 2
KEEP_RUN_LOGS = 20

FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s %(threadName)s %(name)s: %(message)s"
STDERR_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LoggingRuntime:
    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def log_dir() -> Path:
    override = os.environ.get("COMPLIOR_LOG_DIR")
    if override:
        return Path(override)
    data_home = os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share"))
    return Path(data_home) / "complior" / "logs"


def resolve_level(raw: str | None) -> tuple[str, int]:
    """Level name from the environment; anything unknown means INFO."""
    name = (raw or "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    if not isinstance(level, int):
        level = logging.INFO
    return logging.getLevelName(level), level


def _file_stem(session_name: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in session_name)
    return cleaned.strip("-_") or "complior"


def run_log_path(session_name: str, now: datetime | None = None) -> Path:
    now = now or datetime.now(timezone.utc)
    return log_dir() / f"{_file_stem(session_name)}-{now:%Y%m%d-%H%M%S}-{os.getpid()}.log"


def prune_run_logs(directory: Path, keep: int = KEEP_RUN_LOGS) -> int:
    """Delete all but the newest `keep` run logs. Returns how many were removed."""
    try:
        logs = sorted(directory.glob("*.log"), key=lambda p: p.stat().st_mtime, reverse=True)
    except OSError:
        return 0
    removed = 0
    for old in logs[keep:]:
        try:
            old.unlink()
        except OSError:
            continue
        removed += 1
    return removed


def _skip_in_app(record: logging.LogRecord) -> bool:
    # records flagged complior_in_app are shown in the UI already
    return not getattr(record, "complior_in_app", False)


def configure(session_name: str = "complior", stderr: bool = True) -> LoggingRuntime:
    """Attach the run log file (and optionally stderr) to the package logger.

    COMPLIOR_LOG_FILE names the file outright; otherwise a fresh per-run file
    is created in log_dir() and older run logs beyond KEEP_RUN_LOGS are pruned.
    Calling again returns the first runtime unchanged.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level_name, level = resolve_level(os.environ.get("COMPLIOR_LOG_LEVEL"))
    explicit = os.environ.get("COMPLIOR_LOG_FILE")
    path = Path(explicit) if explicit else run_log_path(session_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not explicit:
        prune_run_logs(path.parent)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    file_handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(file_handler)

    if stderr:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(STDERR_FORMAT))
        stream.addFilter(_skip_in_app)
        logger.addHandler(stream)

    # requests/urllib3 and textual stay at WARNING in the root logger
    logging.getLogger().setLevel(max(logging.getLogger().level, logging.WARNING))
    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level, file_path=str(path))
    logger.info("logging to %s at %s", path, level_name)
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    return _RUNTIME


def reset_for_tests() -> None:
    """Forget the runtime and close the package handlers."""
    global _RUNTIME
    _RUNTIME = None
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
