"""Overlays driven by a typed filter string: file picker, help, getting started.

Chars append to the filter and Backspace removes the last one. Esc/q
closes. Help and GettingStarted also close on any other action, and
closing GettingStarted records that the first run is done.
"""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import FileEntry, OverlayKind
from complior_tui.io.file_tree import fuzzy_match_files
from complior_tui.overlays.base import Overlay

# Actions an open filter overlay swallows without closing.
IGNORED_ACTIONS: tuple[type[a.Action], ...] = (
    a.NoAction,
    a.ScrollUp,
    a.ScrollDown,
    a.HistoryUp,
    a.HistoryDown,
)

_CLOSE_ACTIONS = (a.EnterNormalMode, a.Quit)


@dataclass
class TextFilterOverlay(Overlay):
    filter: str = ""


def edit_filter(overlay: TextFilterOverlay, action: a.Action) -> bool:
    """Apply a filter edit. Returns False when the action is not an edit."""
    if isinstance(action, a.InsertChar):
        overlay.filter += action.char
        return True
    if isinstance(action, a.DeleteChar):
        overlay.filter = overlay.filter[:-1]
        return True
    return False


# ─── File picker ──────────────────────────────────────────────────────────────


@dataclass
class FilePickerOverlay(TextFilterOverlay):
    kind = OverlayKind.FILE_PICKER

    def matches(self, tree: list[FileEntry]) -> list[FileEntry]:
        return fuzzy_match_files(tree, self.filter)


def handle_file_picker(overlay: FilePickerOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, _CLOSE_ACTIONS):
        state.overlay = None
    elif edit_filter(overlay, action):
        pass
    elif isinstance(action, a.SubmitInput):
        state.overlay = None
        matches = overlay.matches(state.file_tree)
        if matches:
            state.set_input(f"{state.input}@{matches[0].path} ")
    return None


# ─── Help ─────────────────────────────────────────────────────────────────────


@dataclass
class HelpOverlay(TextFilterOverlay):
    kind = OverlayKind.HELP

    scroll: int = 0


def handle_help(overlay: HelpOverlay, state, action: a.Action) -> c.AppCommand | None:
    # Help is not a navigable overlay, so j/k arrive as InsertChar.
    if isinstance(action, a.ScrollUp) or (isinstance(action, a.InsertChar) and action.char == "k"):
        overlay.scroll = max(overlay.scroll - 1, 0)
    elif isinstance(action, a.ScrollDown) or (isinstance(action, a.InsertChar) and action.char == "j"):
        overlay.scroll += 1
    elif edit_filter(overlay, action) or isinstance(action, IGNORED_ACTIONS):
        pass
    else:
        state.overlay = None
    return None


# ─── Getting started ──────────────────────────────────────────────────────────


@dataclass
class GettingStartedOverlay(TextFilterOverlay):
    kind = OverlayKind.GETTING_STARTED


def handle_getting_started(
    overlay: GettingStartedOverlay, state, action: a.Action
) -> c.AppCommand | None:
    if edit_filter(overlay, action) or isinstance(action, IGNORED_ACTIONS):
        return None
    state.overlay = None
    return c.MarkFirstRunDone()
