"""Command palette: type to filter slash commands, Enter runs one.

The cursor moves over the filtered list; Enter runs the entry under the
cursor, or the first prefix completion of the filter when the list is empty.
"""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.app.command_line import complete_command, filtered_commands, handle_command
from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import OverlayKind
from complior_tui.overlays.base import move_cursor
from complior_tui.overlays.text_filter import TextFilterOverlay, edit_filter


@dataclass
class CommandPaletteOverlay(TextFilterOverlay):
    kind = OverlayKind.COMMAND_PALETTE

    selected: int = 0

    def entries(self) -> list[tuple[str, str]]:
        return filtered_commands(self.filter)

    def chosen(self) -> str | None:
        entries = self.entries()
        if 0 <= self.selected < len(entries):
            return entries[self.selected][0]
        return complete_command(self.filter)


def handle(overlay: CommandPaletteOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    elif edit_filter(overlay, action):
        overlay.selected = 0
    elif isinstance(action, a.ScrollDown):
        overlay.selected = move_cursor(overlay.selected, 1, len(overlay.entries()))
    elif isinstance(action, a.ScrollUp):
        overlay.selected = move_cursor(overlay.selected, -1, len(overlay.entries()))
    elif isinstance(action, a.SubmitInput):
        state.overlay = None
        command = overlay.chosen()
        if command is not None:
            return handle_command(state, command.lstrip("/"))
    return None
