"""Theme picker overlay: a cursor over THEME_NAMES."""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.themes import THEME_NAMES, theme_index
from complior_tui.core.types import OverlayKind, ToastKind
from complior_tui.overlays.base import Overlay, move_cursor


@dataclass
class ThemePickerOverlay(Overlay):
    kind = OverlayKind.THEME_PICKER

    selected: int = 0

    @classmethod
    def for_theme(cls, current: str) -> ThemePickerOverlay:
        return cls(selected=theme_index(current))

    @property
    def selected_name(self) -> str:
        return THEME_NAMES[self.selected]


def handle(overlay: ThemePickerOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.ScrollDown):
        overlay.selected = move_cursor(overlay.selected, 1, len(THEME_NAMES))
    elif isinstance(action, a.ScrollUp):
        overlay.selected = move_cursor(overlay.selected, -1, len(THEME_NAMES))
    elif isinstance(action, a.SubmitInput):
        name = overlay.selected_name
        state.overlay = None
        state.theme = name
        state.post(f"Theme: {name}")
        state.toast(ToastKind.INFO, f"Theme: {name}")
        return c.SaveTheme(name)
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None
