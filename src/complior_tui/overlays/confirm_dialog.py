"""Yes/no confirmation overlay."""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import OverlayKind, ToastKind
from complior_tui.overlays.base import Overlay

CONFIRM_CHARS = frozenset("yY")
CANCEL_CHARS = frozenset("nN")


@dataclass
class ConfirmDialogOverlay(Overlay):
    kind = OverlayKind.CONFIRM_DIALOG

    title: str = "Confirm"
    message: str = ""


def handle(overlay: ConfirmDialogOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.InsertChar) and action.char in CONFIRM_CHARS:
        state.overlay = None
        state.toast(ToastKind.SUCCESS, "Confirmed")
    elif isinstance(action, (a.EnterNormalMode, a.Quit)) or (
        isinstance(action, a.InsertChar) and action.char in CANCEL_CHARS
    ):
        state.overlay = None
    return None
