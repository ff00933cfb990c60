"""Tests for the watch-mode file watcher."""

import threading

import pytest
import watchfiles

from complior_tui.io import watcher as watcher_mod
from complior_tui.io.watcher import ProjectWatcher, is_relevant


@pytest.mark.parametrize(
    "path, relevant",
    [
        ("/proj/src/app.py", True),
        ("/proj/.git/HEAD", False),
        ("/proj/node_modules/x/index.js", False),
        ("/proj/build/out.js", False),
        ("/proj/src/.env", False),
    ],
)
def test_is_relevant(path, relevant):
    assert is_relevant(path, "/proj") is relevant


def test_root_outside_path_is_tolerated():
    assert is_relevant("/elsewhere/file.py", "/proj")


def test_filter_ignores_deletions(tmp_path):
    w = ProjectWatcher(tmp_path, lambda _p: None)
    target = str(tmp_path / "a.py")
    assert w._filter(watchfiles.Change.modified, target)
    assert not w._filter(watchfiles.Change.deleted, target)


def test_reports_first_path_per_batch(tmp_path, monkeypatch):
    batches = [
        {(watchfiles.Change.modified, "/p/b.py"), (watchfiles.Change.added, "/p/a.py")},
        set(),
    ]

    def fake_watch(path, **kwargs):
        assert kwargs["stop_event"] is not None
        yield from batches

    monkeypatch.setattr(watcher_mod.watchfiles, "watch", fake_watch)
    seen = []
    done = threading.Event()

    def on_change(path):
        seen.append(path)
        done.set()

    w = ProjectWatcher(tmp_path, on_change)
    w.start()
    assert done.wait(timeout=2.0)
    w.stop()
    assert seen == ["/p/a.py"]
    assert not w.running


def test_watch_errors_end_the_thread(tmp_path, monkeypatch):
    def broken_watch(path, **kwargs):
        raise OSError("inotify limit")
        yield  # pragma: no cover

    monkeypatch.setattr(watcher_mod.watchfiles, "watch", broken_watch)
    w = ProjectWatcher(tmp_path, lambda _p: None)
    w.start()
    w.stop()
    assert not w.running


def test_stop_without_start(tmp_path):
    ProjectWatcher(tmp_path, lambda _p: None).stop()
