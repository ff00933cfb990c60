"""Dismiss-finding modal opened with `d` in the Scan view."""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import OverlayKind, ToastKind
from complior_tui.overlays.base import Overlay, move_cursor

DISMISS_REASONS: tuple[str, ...] = (
    "False positive",
    "Accepted risk",
    "Will fix later",
    "Not applicable",
    "Other",
)


@dataclass
class DismissModalOverlay(Overlay):
    kind = OverlayKind.DISMISS_MODAL

    finding_index: int = 0
    cursor: int = 0

    @property
    def selected_reason(self) -> str:
        return DISMISS_REASONS[self.cursor]


def handle(overlay: DismissModalOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.ScrollDown):
        overlay.cursor = move_cursor(overlay.cursor, 1, len(DISMISS_REASONS))
    elif isinstance(action, a.ScrollUp):
        overlay.cursor = move_cursor(overlay.cursor, -1, len(DISMISS_REASONS))
    elif isinstance(action, a.SubmitInput):
        state.toast(ToastKind.INFO, f"Dismissed: {overlay.selected_reason}")
        state.overlay = None
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None
