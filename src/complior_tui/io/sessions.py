"""Named session snapshots.

Sessions are JSON files under $XDG_DATA_HOME/complior/sessions/<name>.json.
A `.first_run_done` marker in the same directory records that the
getting-started overlay has been seen.

This module is a STABLE BOUNDARY: not hot-reloadable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from complior_tui.core.types import ChatMessage, JsonDict, ScanResult

logger = logging.getLogger(__name__)

FIRST_RUN_MARKER = ".first_run_done"
AUTOSAVE_NAME = "latest"
SESSION_TERMINAL_LINES = 100


def get_sessions_dir() -> Path:
    """Return $XDG_DATA_HOME (default ~/.local/share) / complior / sessions."""
    data_home = os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share"))
    return Path(data_home) / "complior" / "sessions"


@dataclass
class SessionData:
    messages: list[ChatMessage] = field(default_factory=list)
    score_history: list[float] = field(default_factory=list)
    open_file_path: str | None = None
    terminal_output: list[str] = field(default_factory=list)
    last_scan: ScanResult | None = None

    def to_json(self) -> JsonDict:
        return {
            "messages": [m.to_json() for m in self.messages],
            "score_history": list(self.score_history),
            "open_file_path": self.open_file_path,
            "terminal_output": list(self.terminal_output),
            "last_scan": self.last_scan.to_json() if self.last_scan is not None else None,
        }

    @classmethod
    def from_json(cls, raw: JsonDict) -> SessionData:
        """Raises ValueError on a structurally invalid session file."""
        try:
            last_scan = raw.get("last_scan")
            return cls(
                messages=[ChatMessage.from_json(m) for m in raw.get("messages", [])],
                score_history=[float(s) for s in raw.get("score_history", [])],
                open_file_path=raw.get("open_file_path"),
                terminal_output=[str(line) for line in raw.get("terminal_output", [])],
                last_scan=ScanResult.from_json(last_scan) if last_scan else None,
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed session: {exc!r}") from exc


def _session_path(name: str) -> Path:
    return get_sessions_dir() / f"{name}.json"


def save_session(name: str, data: SessionData) -> Path:
    """Atomic write of one session. Raises OSError on failure."""
    path = _session_path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data.to_json(), f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    logger.debug("session saved: %s", path)
    return path


def load_session(name: str) -> SessionData:
    """Raises OSError when unreadable and ValueError when unparseable."""
    text = _session_path(name).read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"parse: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("parse: session is not a JSON object")
    return SessionData.from_json(raw)


def list_sessions() -> list[str]:
    """Sorted session names. A missing directory yields []."""
    directory = get_sessions_dir()
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.json") if p.is_file())


def first_run_done() -> bool:
    return (get_sessions_dir() / FIRST_RUN_MARKER).exists()


def mark_first_run_done() -> None:
    directory = get_sessions_dir()
    directory.mkdir(parents=True, exist_ok=True)
    (directory / FIRST_RUN_MARKER).write_text("done", encoding="utf-8")
