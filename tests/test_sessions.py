"""Tests for named session snapshots and the first-run marker."""

import json

import pytest

from complior_tui.core.types import ChatMessage, MessageRole
from complior_tui.io import sessions
from complior_tui.io.sessions import SessionData
from tests.builders import make_scan


@pytest.fixture
def sessions_dir(xdg_dirs):
    _config_home, data_home = xdg_dirs
    return data_home / "complior" / "sessions"


class TestSaveLoad:
    def test_round_trip_keeps_scan_and_messages(self, sessions_dir):
        data = SessionData(
            messages=[ChatMessage(MessageRole.USER, "hi"), ChatMessage(MessageRole.ASSISTANT, "hello")],
            score_history=[40.0, 62.0],
            open_file_path="src/app.py",
            terminal_output=["$ ls"],
            last_scan=make_scan(),
        )
        path = sessions.save_session("work", data)
        assert path == sessions_dir / "work.json"

        loaded = sessions.load_session("work")
        assert [m.content for m in loaded.messages] == ["hi", "hello"]
        assert loaded.messages[1].role is MessageRole.ASSISTANT
        assert loaded.score_history == [40.0, 62.0]
        assert loaded.open_file_path == "src/app.py"
        assert loaded.last_scan == make_scan()

    def test_missing_session_raises_oserror(self, sessions_dir):
        with pytest.raises(OSError):
            sessions.load_session("nope")

    def test_corrupt_session_raises_valueerror(self, sessions_dir):
        sessions_dir.mkdir(parents=True)
        (sessions_dir / "bad.json").write_text("{")
        with pytest.raises(ValueError, match="parse"):
            sessions.load_session("bad")

    def test_structurally_invalid_session(self, sessions_dir):
        sessions_dir.mkdir(parents=True)
        (sessions_dir / "odd.json").write_text(json.dumps({"messages": [{"content": "x"}]}))
        with pytest.raises(ValueError, match="malformed session"):
            sessions.load_session("odd")

    def test_state_snapshot_caps_terminal_lines(self, state):
        state.terminal_output = [str(i) for i in range(sessions.SESSION_TERMINAL_LINES + 50)]
        data = state.to_session_data()
        assert len(data.terminal_output) == sessions.SESSION_TERMINAL_LINES
        assert data.terminal_output[0] == "50"


class TestListing:
    def test_missing_directory(self, sessions_dir):
        assert sessions.list_sessions() == []

    def test_sorted_names(self, sessions_dir):
        for name in ("zeta", "alpha", "latest"):
            sessions.save_session(name, SessionData())
        assert sessions.list_sessions() == ["alpha", "latest", "zeta"]

    def test_marker_is_not_a_session(self, sessions_dir):
        sessions.mark_first_run_done()
        assert sessions.list_sessions() == []


class TestFirstRun:
    def test_marker(self, sessions_dir):
        assert not sessions.first_run_done()
        sessions.mark_first_run_done()
        assert sessions.first_run_done()
        assert (sessions_dir / sessions.FIRST_RUN_MARKER).exists()
