"""Pytest configuration and shared fixtures for complior-tui tests."""

import pytest

from complior_tui.app.controller import Controller
from complior_tui.app.state import ApplicationState
from tests.builders import make_scan


@pytest.fixture
def state(tmp_path):
    return ApplicationState(project_path=tmp_path)


@pytest.fixture
def controller(state):
    return Controller(state)


@pytest.fixture
def scanned_state(state):
    state.last_scan = make_scan()
    return state


@pytest.fixture
def xdg_dirs(tmp_path, monkeypatch):
    """Point XDG config and data homes at a temp directory."""
    config = tmp_path / "config"
    data = tmp_path / "data"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config))
    monkeypatch.setenv("XDG_DATA_HOME", str(data))
    return config, data
