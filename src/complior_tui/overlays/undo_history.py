"""Undo history overlay: pick a past fix to revert."""

from __future__ import annotations

from dataclasses import dataclass, field

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import OverlayKind, UndoEntry
from complior_tui.overlays.base import Overlay, move_cursor


@dataclass
class UndoHistoryOverlay(Overlay):
    kind = OverlayKind.UNDO_HISTORY

    entries: list[UndoEntry] = field(default_factory=list)
    selected: int = 0
    loaded: bool = False

    def set_entries(self, entries: list[UndoEntry]) -> None:
        self.entries = entries
        self.selected = 0
        self.loaded = True

    def selected_id(self) -> int | None:
        if 0 <= self.selected < len(self.entries):
            return self.entries[self.selected].id
        return None


def handle(overlay: UndoHistoryOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.ScrollDown):
        overlay.selected = move_cursor(overlay.selected, 1, len(overlay.entries))
    elif isinstance(action, a.ScrollUp):
        overlay.selected = move_cursor(overlay.selected, -1, len(overlay.entries))
    elif isinstance(action, a.SubmitInput):
        entry_id = overlay.selected_id()
        state.overlay = None
        if entry_id is not None:
            return c.Undo(entry_id)
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None
