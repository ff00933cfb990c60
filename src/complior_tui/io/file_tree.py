"""Project file tree for the file browser panel.

Directories are listed one level at a time; children are read when a
directory is expanded.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from complior_tui.core.types import FileEntry

logger = logging.getLogger(__name__)

IGNORED_NAMES = frozenset({"node_modules", "target", "dist", "__pycache__"})


def _list_dir(directory: Path, depth: int) -> list[FileEntry]:
    try:
        children = list(os.scandir(directory))
    except OSError as exc:
        logger.debug("cannot list %s: %s", directory, exc)
        return []

    visible = [
        e for e in children
        if not e.name.startswith(".") and e.name not in IGNORED_NAMES
    ]
    # directories first, then case-insensitive name order
    visible.sort(key=lambda e: (not e.is_dir(), e.name.lower()))
    return [
        FileEntry(path=e.path, name=e.name, is_dir=e.is_dir(), depth=depth)
        for e in visible
    ]


def build_file_tree(root: str | os.PathLike[str]) -> list[FileEntry]:
    return _list_dir(Path(root), 0)


def toggle_expand(tree: list[FileEntry], index: int) -> None:
    """Expand or collapse the directory at index, in place."""
    if not 0 <= index < len(tree):
        return
    entry = tree[index]
    if not entry.is_dir:
        return

    if entry.expanded:
        entry.expanded = False
        end = index + 1
        while end < len(tree) and tree[end].depth > entry.depth:
            end += 1
        del tree[index + 1:end]
    else:
        entry.expanded = True
        tree[index + 1:index + 1] = _list_dir(Path(entry.path), entry.depth + 1)


def fuzzy_match_files(tree: list[FileEntry], query: str) -> list[FileEntry]:
    """Files (not directories) whose name or path contains query, case-insensitively."""
    needle = query.lower()
    return [
        e for e in tree
        if not e.is_dir and (not needle or needle in e.name.lower() or needle in e.path.lower())
    ]
