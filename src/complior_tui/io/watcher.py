"""Project file watcher for watch mode.

Runs `watchfiles.watch` on a daemon thread and reports each relevant
created or modified path through on_change. Hidden paths and build
directories are filtered out.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

import watchfiles

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", "target", "dist", "build", "__pycache__"})
DEBOUNCE_MS = 500
RELEVANT_CHANGES = frozenset({watchfiles.Change.added, watchfiles.Change.modified})


def is_relevant(path: str | Path, root: str | Path | None = None) -> bool:
    """False for hidden components and SKIP_DIRS anywhere below root."""
    p = Path(path)
    if root is not None:
        try:
            p = p.relative_to(root)
        except ValueError:
            pass
    for part in p.parts:
        if part in ("/", "\\") or part.endswith(":\\"):
            continue
        if part.startswith(".") or part in SKIP_DIRS:
            return False
    return True


class ProjectWatcher:
    """Watch a project tree on a background thread until stop() is called."""

    def __init__(self, path: str | Path, on_change: Callable[[str], None]):
        self._path = Path(path)
        self._on_change = on_change
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _filter(self, change: watchfiles.Change, path: str) -> bool:
        return change in RELEVANT_CHANGES and is_relevant(path, self._path)

    def _run(self) -> None:
        logger.info("watching %s for changes", self._path)
        try:
            for changes in watchfiles.watch(
                self._path,
                watch_filter=self._filter,
                debounce=DEBOUNCE_MS,
                stop_event=self._stop,
                raise_interrupt=False,
            ):
                # one notification per debounced batch; the scan covers the rest
                paths = sorted(path for _change, path in changes)
                if paths:
                    self._on_change(paths[0])
        except (OSError, RuntimeError) as exc:
            logger.error("watcher for %s stopped: %s", self._path, exc)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="project-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
